"""
Form completion reporting.

The three basic fields always count. The three advanced fields join
both the numerator and the denominator only once at least one of them
is filled in, so a user who never opens the advanced section can still
reach 100%. This dynamic denominator is a product decision; keep it.
"""

from collections.abc import Mapping
from typing import Any

from orchid_predict.core.schema import ADVANCED_FIELDS, PROGRESS_BASIC_FIELDS, FormProgress
from orchid_predict.core.utils import is_blank


def get_form_progress(form: Mapping[str, Any]) -> FormProgress:
    """Compute percentage, filled and total field counts for a snapshot."""
    filled = sum(1 for f in PROGRESS_BASIC_FIELDS if not is_blank(form.get(f)))
    total = len(PROGRESS_BASIC_FIELDS)

    advanced_filled = sum(1 for f in ADVANCED_FIELDS if not is_blank(form.get(f)))
    if advanced_filled:
        filled += advanced_filled
        total += len(ADVANCED_FIELDS)

    percentage = round(filled / total * 100, 2) if total else 0.0
    return FormProgress(percentage=percentage, filled_fields=filled, total_fields=total)
