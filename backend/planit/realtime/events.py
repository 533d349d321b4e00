# Client -> server
ROOM_CREATE = "room:create"
ROOM_JOIN = "room:join"
ROOM_LEAVE = "room:leave"
VOTE_SUBMIT = "vote:submit"
VOTE_REVEAL = "vote:reveal"
VOTE_RESET = "vote:reset"

# Server -> client
ROOMS_UPDATE = "rooms:update"
ROOM_UPDATED = "room:updated"
ROOM_VOTE = "room:vote"
ROOM_VOTES = "room:votes"
USERS_UPDATE = "users:update"
