# society_app/shared/models/__init__.py
"""
Общие DTO и Pydantic-модели платформы.
"""

from society_app.shared.models.enums import (
    ApprovalStatus,
    DeliveryPreference,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    UserType,
)
from society_app.shared.models.user import User, Resident, Vendor
from society_app.shared.models.catalog import (
    ParentCategory,
    ServiceCategory,
    VendorService,
    VendorRateCard,
)
from society_app.shared.models.workflow import (
    ServiceWorkflow,
    ServiceWorkflowTemplate,
    WorkflowStep,
)
from society_app.shared.models.order import (
    Order,
    OrderDetails,
    OrderItem,
    OrderServiceStatus,
)
from society_app.shared.models.payment import Payment, PaymentCallbackDTO
from society_app.shared.models.common import HealthStatus, PaginationParams
from society_app.shared.models.api import (
    AdvanceStatusRequest,
    ApiError,
    ApiResponse,
    CreateOrderDTO,
    EligibilityResult,
    EstimateRequest,
    ItemCountDTO,
    NotificationRequest,
    OrderItemDTO,
    PaginatedResponse,
    PaginationMeta,
    PriceEstimate,
    PriceLine,
    ResponseMeta,
    UpdateItemQuantityRequest,
)

__all__ = [
    # Enums
    "ApprovalStatus",
    "DeliveryPreference",
    "OrderStatus",
    "PaymentMethod",
    "PaymentStatus",
    "UserType",
    # Parties
    "User",
    "Resident",
    "Vendor",
    # Catalog
    "ParentCategory",
    "ServiceCategory",
    "VendorService",
    "VendorRateCard",
    # Workflow
    "ServiceWorkflow",
    "ServiceWorkflowTemplate",
    "WorkflowStep",
    # Order
    "Order",
    "OrderDetails",
    "OrderItem",
    "OrderServiceStatus",
    # Payment
    "Payment",
    "PaymentCallbackDTO",
    # Common / API
    "HealthStatus",
    "PaginationParams",
    "AdvanceStatusRequest",
    "ApiError",
    "ApiResponse",
    "CreateOrderDTO",
    "EligibilityResult",
    "EstimateRequest",
    "ItemCountDTO",
    "NotificationRequest",
    "OrderItemDTO",
    "PaginatedResponse",
    "PaginationMeta",
    "PriceEstimate",
    "PriceLine",
    "ResponseMeta",
    "UpdateItemQuantityRequest",
]
