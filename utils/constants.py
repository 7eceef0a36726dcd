"""
utils/constants.py

Purpose: Centralized static content

- Durable storage keys for the session
- All user-facing messages (errors, successes, onboarding guidance)
- Backend endpoint paths

(Prevents hardcoding across the codebase)
"""

# ============================================================
# STORAGE KEYS
# ============================================================

ACCESS_TOKEN_KEY = "@capitalized_access_token"
REFRESH_TOKEN_KEY = "@capitalized_refresh_token"
USER_DATA_KEY = "@capitalized_user_data"

SESSION_KEYS = (ACCESS_TOKEN_KEY, REFRESH_TOKEN_KEY, USER_DATA_KEY)


# ============================================================
# BACKEND ENDPOINTS
# ============================================================

AUTH_LOGIN_PATH = "/auth/login"
AUTH_REGISTER_PATH = "/auth/register"
AUTH_VERIFY_PHONE_PATH = "/auth/verify-phone"
AUTH_RESEND_OTP_PATH = "/auth/resend-otp"
AUTH_REFRESH_PATH = "/auth/refresh"
AUTH_LOGOUT_PATH = "/auth/logout"
AUTH_ME_PATH = "/auth/me"
AUTH_PROFILE_PATH = "/auth/profile"

KYC_STATUS_PATH = "/kyc/status"

SUBSCRIPTION_PLANS_PATH = "/subscriptions/plans"
SUBSCRIPTION_MINE_PATH = "/subscriptions/my-subscription"
SUBSCRIPTION_SUBSCRIBE_PATH = "/subscriptions/subscribe"
SUBSCRIPTION_CANCEL_PATH = "/subscriptions/cancel"
SUBSCRIPTION_TRIAL_PATH = "/subscriptions/start-trial"


# ============================================================
# ERROR MESSAGES
# ============================================================

ERROR_MESSAGES = {
    "network": "Network error. Please check your connection and try again.",
    "timeout": "Request timeout. Please try again.",
    "unauthorized": "Your session has expired. Please log in again.",
    "invalid_credentials": "Invalid phone/email or password.",
    "forbidden": "You do not have permission to perform this action.",
    "not_found": "The requested resource was not found.",
    "server": "Something went wrong on our end. Please try again later.",
    "validation": "Please check your input and try again.",
    "conflict": "This action conflicts with the current state of your account.",
}

TRIAL_CONFLICT_MESSAGE = (
    "A free trial has already been used or you already have an active "
    "subscription on this account."
)
TRIAL_FORBIDDEN_MESSAGE = "Please complete your profile first to activate the free trial."
TRIAL_NETWORK_MESSAGE = "Failed to activate free trial. Please try again."
TRIAL_AUTH_MESSAGE = "Please log in again to activate your free trial."

PROFILE_NETWORK_MESSAGE = "Failed to save your profile. Please try again."
PROFILE_VALIDATION_MESSAGE = "Please correct the errors below."

INVALID_OTP_MESSAGE = "OTP must be 6 digits"


# ============================================================
# SUCCESS MESSAGES
# ============================================================

SUCCESS_MESSAGES = {
    "registration": "Registration successful! Please verify your phone number.",
    "login": "Welcome back!",
    "logout": "You have been logged out.",
    "phone_verified": "Phone number verified successfully!",
    "otp_resent": "A new verification code has been sent.",
    "profile_updated": "Profile updated successfully!",
    "trial_started": "Your free trial is now active.",
    "subscription_cancelled": "Your subscription has been cancelled.",
}


# ============================================================
# ONBOARDING GUIDANCE
# ============================================================

NEXT_STEP_MESSAGES = {
    "login": "Please log in to continue",
    "verify_phone": "Please verify your phone number to continue",
    "complete_profile": "Complete your profile to access the dashboard",
    "submit_kyc_optional": "Complete your KYC to start investing",
    "kyc_under_review": "Your KYC documents are under review",
    "resubmit_kyc": "Please resubmit your KYC documents",
    "complete": "Onboarding complete! Welcome to your dashboard",
}

REDIRECTS = {
    "login": "/auth/login",
    "verify_phone": "/auth/verify",
    "complete_profile": "/onboarding/profile",
    "dashboard": "/app",
}
