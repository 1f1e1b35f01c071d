"""
Lua scripts for the sliding-window failed-attempt counter.

Each key is a sorted set of attempt timestamps (ms). Both scripts prune the
entries that fell out of the window before looking at the set, so a key is
always evaluated against the current window only.
"""

# KEYS[1] key, ARGV[1] now_ms, ARGV[2] window_ms, ARGV[3] member
# Returns the number of attempts inside the window, the new one included.
RECORD_ATTEMPT_SCRIPT = """
local key = KEYS[1]
local now = tonumber(ARGV[1])
local window = tonumber(ARGV[2])
local member = ARGV[3]

redis.call('ZREMRANGEBYSCORE', key, '-inf', now - window)
redis.call('ZADD', key, now, member)
redis.call('PEXPIRE', key, window)
return redis.call('ZCARD', key)
"""

# KEYS[1] key, ARGV[1] now_ms, ARGV[2] window_ms, ARGV[3] limit
# Returns 0 when under the limit, otherwise the milliseconds until a slot frees up.
RETRY_AFTER_SCRIPT = """
local key = KEYS[1]
local now = tonumber(ARGV[1])
local window = tonumber(ARGV[2])
local limit = tonumber(ARGV[3])

redis.call('ZREMRANGEBYSCORE', key, '-inf', now - window)
local count = redis.call('ZCARD', key)
if count < limit then
    return 0
end

local oldest = redis.call('ZRANGE', key, count - limit, count - limit, 'WITHSCORES')
local retry_after = tonumber(oldest[2]) + window - now
if retry_after < 1 then
    return 1
end
return retry_after
"""
