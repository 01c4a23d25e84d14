from app.services.invite_token_service import TokenCodec, IssuedToken, VerificationResult, VerificationStatus
from app.services.time_aggregation import TimeEntry, AggregationOptions, AggregationResult, MonthProjects, aggregate
from app.services.email_service import EmailService, email_service

__all__ = [
    # Invitations
    "TokenCodec",
    "IssuedToken",
    "VerificationResult",
    "VerificationStatus",
    "EmailService",
    "email_service",
    # Time reporting
    "TimeEntry",
    "AggregationOptions",
    "AggregationResult",
    "MonthProjects",
    "aggregate",
]
