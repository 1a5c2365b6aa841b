# kvstore - persistent key-value plugin storage
#
# Modules:
# - config: Process settings and per-store configuration records
# - logging: Structured logging
# - errors: Storage error taxonomy
# - storage: Storage backends (MongoDB, in-memory)
