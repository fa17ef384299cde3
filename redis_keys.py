REDIS_PRESENCE_KEY = "presence:{connection_id}" # connection id - presence hash
REDIS_OWNER_KEY = "presence-owner:{instance_id}" # registry instance id - set of connection ids it registered

# **Example `presence:{connection_id}` hash fields**
# - `userName` = display name (absent until the connection joins a room)
# - `video` = "1" | "0"
# - `audio` = "1" | "0"

# A registry only ever purges the connection ids listed under its own owner set,
# so workers sharing one Redis never clear each other's live presence.
