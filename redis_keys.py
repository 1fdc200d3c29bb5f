REDIS_ROOM_KEY = "room:{room_id}" # lower-cased room id - JSON room record
REDIS_MESSAGES_KEY = "messages:{room_id}" # lower-cased room id - list of JSON messages, append order
REDIS_IP_ROOMS_KEY = "ip_rooms:{address}" # client address - set of room ids created from it

REDIS_ROOM_PREFIX = "room:"
REDIS_ROOM_PATTERN = "room:*"

# **Example `room:{id}` value**
# {"id": "k3fq7", "createdAt": 1731846896000, "hostKey": "...", "isPrivate": true, "password": "<sha256 hex>"}

# **Example `messages:{id}` entry**
# {"id": "...", "roomId": "k3fq7", "userId": "x81kd0", "content": "hello", "type": "text", "createdAt": 1731846900000}

# **TTL**
# - All three key classes carry a 24h TTL.
# - Reading a room refreshes `room:{id}` and `messages:{id}`; appending a message does the same.
# - `ip_rooms:{address}` is refreshed only when that address creates another room.
