from django.conf import settings

# Defaults for every LEDGER_* setting the engine reads
DEFAULTS = {
    "LEDGER_NUMBER_PADDING": 5,
    "LEDGER_PROMOTE_DRAFT_ON_PAYMENT": True,
    "LEDGER_TRACK_PARTIAL_PAYMENTS": False,
    "LEDGER_EXPORT_TAG": "FEC",
    "LEDGER_EXPORT_ACCOUNTS": {
        "receivable": "411",  # customer code is appended
        "revenue": "706000",
        "vat_collected": "445710",
        "bank": "512000",
    },
    "LEDGER_EXPORT_JOURNALS": {
        "sales": "VT",
        "bank": "BQ",
    },
}


def ledger_setting(name):
    """Read a LEDGER_* setting, falling back to the engine default.

    Dict settings are merged over their defaults so a project can
    override a single account number.
    """
    default = DEFAULTS[name]
    value = getattr(settings, name, default)
    if isinstance(default, dict):
        merged = dict(default)
        merged.update(value or {})
        return merged
    return value
