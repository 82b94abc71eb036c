"""Internal constants shared across the library."""

#: Only device type this library models.
SHUTTER_TYPE = "Rolling_Shutter"

GET_OBJECTS_PATH = "/m?a=getObjects"
COMMAND_PATH = "/m?a=command"

# The box webserver rejects anything that is not a form POST, including reads.
FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"
ACCEPT_HEADER = "application/json, text/plain, */*"

# ------------------------------------------------------------------
# Event channel line protocol
# ------------------------------------------------------------------

EVENT_CHANNEL_PROTOCOL = "lws-mirror-protocol"
LOGIN_FRAME = "p1 1 _web / login"
UPTIME_EVENT = "event/system/gateway/uptime"
#: Sequence number of the login frame; heartbeats continue after it.
FIRST_HEARTBEAT_SEQUENCE = 3

BASE64_PREFIX = "@"
EVENT_KEY_INDEX = 6
EVENT_VALUE_INDEX = 7
LEVEL_SUFFIX = "level"

LEVEL_MIN = 0
LEVEL_MAX = 100
