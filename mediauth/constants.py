"""API-level constants shared across modules."""
from __future__ import annotations

API_PREFIX = "/api/"
HEALTH_PATH = "/health"

ALLOWED_METHODS = ("GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS")
ALLOWED_HEADERS = ("Content-Type", "Authorization", "X-Requested-With")

# Mounted under /api/<name>; each collaborator owns its own contract.
COLLABORATOR_PREFIXES = (
    "auth",
    "users",
    "patients",
    "appointments",
    "medical",
    "prescriptions",
    "lab",
    "billing",
    "consultation",
    "super-admin",
    "webhook",
)


class Messages:
    VALIDATION_FAILED = "Dữ liệu không hợp lệ"
    INVALID_TOKEN = "Token không hợp lệ"
    TOKEN_EXPIRED = "Token đã hết hạn"
    DATABASE_UNAVAILABLE = "Database connection error"
    DATABASE_UNAVAILABLE_DETAILS = "Cannot connect to MongoDB database"
    DATABASE_FAILURE = "Database error"
    DATABASE_FAILURE_DETAILS = "Internal database error occurred"
    ORIGIN_REJECTED = "Not allowed by CORS"
    PAYLOAD_TOO_LARGE = "Payload too large"
    RATE_LIMITED = "Quá nhiều request từ IP này, vui lòng thử lại sau 15 phút."
    INTERNAL = "Đã xảy ra lỗi hệ thống"
    NOT_FOUND = "Không tìm thấy endpoint"
    BANNER = "🩺 Healthcare Backend API"
    CONFIGURED = "Configured"
    NOT_CONFIGURED = "Not configured"
