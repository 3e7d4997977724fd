"""
Core constants and limits.

Defines system-wide defaults and resource limits that keep the ledger
bounded and the persisted document small.
"""

# Account
DEFAULT_INITIAL_CASH = 100000.0  # Starting cash per agent
STATE_VERSION = 1  # Persisted document version

# History Limits (applied before every persisted write)
MAX_TRADES_PER_PORTFOLIO = 1000
MAX_PERFORMANCE_SNAPSHOTS = 365
MAX_ERROR_LOG = 100
MAX_RESOLVED_ERRORS_KEPT = 50
MAX_CORPORATE_ACTIONS = 50

# Emergency snapshot limits (storage quota fallback)
EMERGENCY_TRADES = 100
EMERGENCY_SNAPSHOTS = 30
EMERGENCY_ERRORS = 20
EMERGENCY_CORPORATE_ACTIONS = 10

# Position Sizing defaults
MAX_POSITION_PERCENT = 0.2  # 20% of total value per position
MAX_TOTAL_INVESTED = 0.8  # 80% of total value invested
MIN_TRADE_VALUE = 100.0  # $100 minimum trade
MAX_POSITIONS_PER_AGENT = 10
RESERVE_CASH_PERCENT = 0.05  # 5% of total value kept as cash

# Risk Management defaults
MAX_DRAWDOWN_BEFORE_PAUSE = 0.3
MAX_DRAWDOWN_BEFORE_LIQUIDATE = 0.8

# Decision Engine
MIN_BUY_CONFIDENCE = 50.0
LANDSLIDE_MARGIN = 20.0  # margin above which a win is a landslide
DECISIVE_MARGIN = 10.0  # margin at or above which a win is decisive
CLOSE_DEBATE_MARGIN = 10.0  # margin below which a debate is close
LANDSLIDE_BONUS = 10.0
DECISIVE_BONUS = 5.0
LOST_DEBATE_MULTIPLIER = 0.5
CLOSE_DEBATE_MULTIPLIER = 0.8
LOW_WIN_RATE_THRESHOLD = 0.4
LOW_WIN_RATE_MIN_TRADES = 5
LOW_WIN_RATE_MULTIPLIER = 0.7

# Price Validation
STALE_PRICE_SECONDS = 5 * 60
SUSPICIOUS_MOVE_THRESHOLD = 0.2  # 20% jump versus last known price
LAST_PRICE_CACHE_SIZE = 1024
LAST_PRICE_CACHE_TTL_SECONDS = 24 * 60 * 60

# Ledger
DUPLICATE_LOOKBACK_TRADES = 10
DUPLICATE_WINDOW_SECONDS = 5.0
DUPLICATE_PRICE_TOLERANCE = 0.01

# Concurrency
DEFAULT_LOCK_TIMEOUT_SECONDS = 30.0

# Performance Analytics
TRADING_DAYS_PER_YEAR = 252
MIN_SHARPE_SAMPLES = 30
DEFAULT_RISK_FREE_RATE = 0.04  # annual
NEGLIGIBLE_STD = 1e-10
FIFO_MAX_ITERATIONS = 10000
SNAPSHOT_INTERVAL_HOURS = 24

# Default agent roster: (agent_id, display name, methodology)
DEFAULT_AGENTS = (
    ("warren", "Warren", "value"),
    ("cathie", "Cathie", "growth"),
    ("jim", "Jim", "technical"),
    ("ray", "Ray", "macro"),
    ("elon", "Elon", "sentiment"),
    ("karen", "Karen", "risk"),
    ("quant", "Quant", "quant"),
    ("devil", "Devil's Advocate", "contrarian"),
)

# Persistence
FUTURE_DATE_TOLERANCE_SECONDS = 60  # clock skew allowed for persisted dates
