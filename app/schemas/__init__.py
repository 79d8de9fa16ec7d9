from app.schemas.projects import (  # noqa: F401
    ProjectCreateRequest,
    ProjectUpdateRequest,
    ProjectResponse,
    ProjectListResponse,
)
from app.schemas.bids import BidCreateRequest, BidResponse  # noqa: F401
from app.schemas.delivery import (  # noqa: F401
    DeliverRequest,
    RejectDeliveryRequest,
    RateMerchantRequest,
)
