"""
Redis Lua scripts for token management.

Scripts run atomically on the server, so concurrent refreshes presenting the
same refresh token cannot both succeed.
"""

# KEYS[1] = family key, KEYS[2] = used-marker key of the presented refresh token
# ARGV[1] = TTL in seconds for the used-marker
# Returns 'REUSED' if the token was already consumed, 'INVALID' if its family
# is gone, otherwise marks the token used and returns 'OK'.
CONSUME_REFRESH_TOKEN_SCRIPT = """
local family_key = KEYS[1]
local used_key = KEYS[2]
local used_ttl_seconds = ARGV[1]

if redis.call('EXISTS', used_key) == 1 then
    return 'REUSED'
end

if redis.call('EXISTS', family_key) == 0 then
    return 'INVALID'
end

redis.call('SETEX', used_key, used_ttl_seconds, 'used')

return 'OK'
"""
