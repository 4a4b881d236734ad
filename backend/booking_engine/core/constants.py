"""Application-wide constants for the booking engine."""

# Fallback display name when neither tenant settings nor the tenant carry one
DEFAULT_COMPANY_NAME = "Business"

# Tenant lifecycle values; only active tenants are swept by automations
TENANT_STATUS_ACTIVE = "active"
TENANT_STATUS_SUSPENDED = "suspended"

# SMS bodies longer than this are truncated by the transport
MAX_SMS_LENGTH = 1600

# Query limits
DEFAULT_QUERY_LIMIT = 100
