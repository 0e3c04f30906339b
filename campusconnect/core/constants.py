"""Global constants for the campusconnect application."""

# Firestore collections
USERS_COLLECTION = "users"
CONNECTIONS_COLLECTION = "connections"
NOTIFICATIONS_COLLECTION = "notifications"
CHANNELS_COLLECTION = "channels"
GROUPS_COLLECTION = "groups"
DMS_COLLECTION = "dms"
MESSAGES_COLLECTION = "messages"
POSTS_COLLECTION = "posts"
COMMENTS_COLLECTION = "comments"
NOTICES_COLLECTION = "notices"
EVENTS_COLLECTION = "events"

# Realtime Database presence root
STATUS_PATH = "/status"
PRESENCE_ONLINE = "online"
PRESENCE_OFFLINE = "offline"

# Firestore caps a batch at 500 operations
FIRESTORE_BATCH_LIMIT = 400

DM_ID_SEPARATOR = "_"
ALL_DEPARTMENTS = "ALL"

# Connection record statuses
STATUS_REQUEST_SENT = "request_sent"
STATUS_REQUEST_RECEIVED = "request_received"
STATUS_CONNECTED = "connected"

# Blob paths
GROUP_IMAGE_PATH = "groups/{conversation_id}/images/{filename}"
CHANNEL_IMAGE_PATH = "channels/{conversation_id}/images/{filename}"
DM_IMAGE_PATH = "dms/{conversation_id}/images/{filename}"
POST_IMAGE_PATH = "posts/{user_id}/{filename}"
