TOKEN_EXPIRE_SECONDS = 3600

# agora_token_builder role value
ROLE_PUBLISHER = 1

# Incoming call pushes are useless once the caller gave up
CALL_PUSH_TTL_SECONDS = 60

ANDROID_CALL_CHANNEL_ID = "incoming_call_channel"
APNS_CALL_CATEGORY = "CALL_INVITATION"

UNKNOWN_CALLER_NAME = "Unknown"
DEFAULT_CALL_TYPE = "audio"

# Gateway error codes
FCM_ERROR_NOT_REGISTERED = "messaging/registration-token-not-registered"
FCM_ERROR_INVALID_REGISTRATION = "messaging/invalid-registration-token"
FCM_ERROR_INVALID_ARGUMENT = "messaging/invalid-argument"
FCM_ERROR_MISMATCHED_CREDENTIAL = "messaging/mismatched-credential"
FCM_ERROR_UNKNOWN = "messaging/unknown-error"

DEFAULT_REGISTRATION_COLLECTION = "users"
DEFAULT_REGISTRATION_FIELD = "fcmTokens"
