"""
Log codes for the local event queue.
"""

QUEUE = "queue"

# Store
STORE = f"{QUEUE}.store"
STORE_CAPACITY_EXCEEDED = f"{STORE}.capacity_exceeded"

# Flush
FLUSH = f"{QUEUE}.flush"
FLUSH_STARTED = f"{FLUSH}.started"
FLUSH_COMPLETED = f"{FLUSH}.completed"
FLUSH_BATCH_SENT = f"{FLUSH}.batch_sent"
FLUSH_BATCH_FAILED = f"{FLUSH}.batch_failed"
FLUSH_BATCH_SKIPPED = f"{FLUSH}.batch_skipped"
FLUSH_INLINE_FAILED = f"{FLUSH}.inline_failed"

# Scheduler
SCHEDULER = f"{QUEUE}.scheduler"
SCHEDULER_STARTED = f"{SCHEDULER}.started"
SCHEDULER_DISABLED = f"{SCHEDULER}.disabled"
SCHEDULER_TICK_FAILED = f"{SCHEDULER}.tick_failed"
SCHEDULER_DRAINING = f"{SCHEDULER}.draining"
SCHEDULER_SHUTDOWN_TIMEOUT = f"{SCHEDULER}.shutdown_timeout"
SCHEDULER_STOPPED = f"{SCHEDULER}.stopped"
