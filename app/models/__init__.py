# Importing this package registers every mapped class on Base.metadata.
from app.models.user import User  # noqa: F401
from app.models.project import Project  # noqa: F401
from app.models.bid import Bid  # noqa: F401
from app.models.audit_log import AuditLogRecord  # noqa: F401
