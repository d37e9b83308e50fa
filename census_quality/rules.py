"""
Deterministic scoring rules.

Every threshold and penalty used by the scoring engine lives here so the
weights stay static and reviewable in one place.
"""

CENSUS_DELIMITER = ","
SUPPORTED_EXTENSIONS = (".csv", ".txt")

# Plan limits
GI_LIMIT = 150000
PLAN_MAX_VOL_MULTIPLE = 5
WAITING_PERIOD_DAYS = 30

# Penalties (points per affected record)
PENALTY_MISSING_SALARY = 5
PENALTY_MISSING_DOB = 4
PENALTY_VOL_OVER_MAX = 6
PENALTY_ZERO_SALARY_COV = 5
PENALTY_WAITING_PERIOD = 5
PENALTY_INELIGIBLE_DEP = 4
PENALTY_EOI_MISSING_SALARY = 3
EOI_RATE_FACTOR = 0.8

# Density adjustments: (max error rate, points)
COMPLETENESS_DENSITY_BONUS = ((0.05, 15), (0.10, 10))
CONSISTENCY_DENSITY_PENALTY_LOW = 9
CONSISTENCY_DENSITY_PENALTY_HIGH = 15
CONSISTENCY_LOW_DENSITY = 0.05

# Overall weighting
WEIGHTS = {
    "completeness": 0.30,
    "consistency": 0.25,
    "eligibility": 0.25,
    "eoi_risk": 0.20,
}

LOW_RISK_MIN_SCORE = 85
MODERATE_RISK_MIN_SCORE = 70

MISSING_SALARY_ANOMALY_RATE = 0.10
EOI_VOLUME_BUFFER = 1.1
MAX_RISK_DRIVERS = 5

# Age assigned to missing/invalid dates so recency rules never fire on them.
INVALID_DATE_AGE_DAYS = 9999

DATE_FORMATS = (
    "%Y-%m-%d",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%d %H:%M:%S",
    "%m/%d/%Y",
    "%m/%d/%y",
    "%Y/%m/%d",
    "%m-%d-%Y",
    "%d %b %Y",
    "%d-%b-%Y",
    "%d %B %Y",
    "%b %d %Y",
    "%b %d, %Y",
    "%B %d %Y",
    "%B %d, %Y",
)
