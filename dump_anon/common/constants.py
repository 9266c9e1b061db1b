STATEMENT_TERMINATOR = ";"

# depends on max_allowed_packet of mysqldump, its maximum is 1G
MAX_LINE_SIZE = 1 << 30

DEFAULT_SQL_DIALECT = "mysql"

# bcrypt work factor bounds, the same as the reference bcrypt implementation
MIN_HASH_COST = 4
MAX_HASH_COST = 31
DEFAULT_HASH_COST = 10
BCRYPT_MAX_PASSWORD_BYTES = 72

DEFAULT_PROCESSES = 4
DEFAULT_QUEUE_SIZE = 64
QUEUE_POLL_TIMEOUT = 1.0  # seconds

RULE_FILE_SUFFIXES = (".yml", ".yaml")
TEMPLATE_VALUE_NAME = "value"

LOG_FILE_MAX_BYTES = 10 * 1024 * 1024
LOG_FILE_BACKUP_COUNT = 10

TRACEBACK_LINES_COUNT = 100
