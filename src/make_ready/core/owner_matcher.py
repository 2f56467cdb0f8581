import logging

DEFAULT_ATTACHER_ALIASES = ["charter", "spectrum", "charter/spectrum", "charter communications"]


class OwnerMatcher:
    """Case-insensitive company matching against a set of known name variants"""

    def __init__(self, aliases=None):
        aliases = aliases if aliases is not None else DEFAULT_ATTACHER_ALIASES
        self.aliases = [str(alias).strip().lower() for alias in aliases if alias and str(alias).strip()]
        if not self.aliases:
            logging.warning("Owner matcher created without aliases; no owner will match")

    @staticmethod
    def owner_name(owner):
        """
        Turn an owner field into a display name

        SPIDA stores owners as {"id": "CPS Energy", "industry": "UTILITY"} while
        Katapult stores a plain string.
        """
        if owner is None:
            return ""
        if isinstance(owner, str):
            return owner.strip()
        if isinstance(owner, dict):
            for key in ("id", "name", "industry"):
                value = owner.get(key)
                if isinstance(value, str) and value.strip():
                    return value.strip()
            return ""
        return str(owner)

    def matches(self, owner):
        """Return True when the owner is one of the known name variants"""
        name = self.owner_name(owner).lower()
        if not name:
            return False
        return any(alias in name for alias in self.aliases)

    def __call__(self, owner):
        return self.matches(owner)

    @staticmethod
    def contains_utility(owner, utility_name):
        """Check whether an owner name contains the utility's name"""
        if not utility_name:
            return False
        return utility_name.strip().lower() in OwnerMatcher.owner_name(owner).lower()
