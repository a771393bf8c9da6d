"""
Application constants.

Centralized operational constants for the points indexer.
"""

# ========================================================================
# BLOCKCHAIN CONSTANTS
# ========================================================================

# Blockchain operation timeouts (in seconds)
BLOCKCHAIN_TIMEOUT = 30.0  # balanceOf, get_block
BLOCKCHAIN_LONG_TIMEOUT = 120.0  # get_logs over a full chunk
BLOCKCHAIN_EXECUTOR_WORKERS = 8  # Thread pool size for sync web3 calls

# Blockchain retry settings
BLOCKCHAIN_MAX_RETRIES = 3
BLOCKCHAIN_RETRY_DELAY_BASE = 1.0  # Seconds, doubled on every attempt

# RPC rate limiting
RPC_MAX_CONCURRENT = 10  # Maximum concurrent balance lookups

# Log scanning
INDEXER_CHUNK_SIZE = 2000  # Blocks per eth_getLogs request
FINALITY_CONFIRMATIONS = 75  # Blocks behind head considered final

# ========================================================================
# PIPELINE CONSTANTS
# ========================================================================

BATCH_COMMIT_MAX_ATTEMPTS = 3  # Full batch retries after a failed commit

# Ids per IN (...) query; keeps bind parameters far below driver limits
SQL_IN_CHUNK_SIZE = 500

# Dramatiq
DRAMATIQ_NAMESPACE = "points-indexer"
DRAMATIQ_MAX_RETRIES = 3
DRAMATIQ_MIN_BACKOFF = 1_000  # ms
DRAMATIQ_MAX_BACKOFF = 60_000  # ms
DRAMATIQ_TIME_LIMIT_INDEXER = 600_000  # 10 min

# ========================================================================
# LOGGING CONSTANTS
# ========================================================================

LOG_FILE_PATH = "logs/points_indexer.log"
LOG_ROTATION = "1 day"
LOG_RETENTION = "7 days"
