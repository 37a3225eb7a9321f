"""
Constants for build quota.
"""


class Plan:
    """
    Subscription plan constants.
    """
    FREE = 'Free'
    PRO = 'Pro'
    TEAM = 'Team'

    CHOICES = [
        (FREE, 'Free'),
        (PRO, 'Pro'),
        (TEAM, 'Team'),
    ]

    @classmethod
    def get_all_plans(cls):
        return [cls.FREE, cls.PRO, cls.TEAM]

    @classmethod
    def normalize(cls, plan):
        """
        Map any casing of a plan name to its canonical value.
        Unknown or empty values fall back to Free.
        """
        lookup = {p.lower(): p for p in cls.get_all_plans()}
        return lookup.get(str(plan or '').strip().lower(), cls.FREE)


# Bounds for a single consume/refund call
MIN_QUOTA_COUNT = 1
MAX_QUOTA_COUNT = 1000

# Bounds for the pre-flight check endpoint (batch size)
MAX_CHECK_COUNT = 10
