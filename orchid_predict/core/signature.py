"""
Request signatures for duplicate-call suppression.
"""

import json
from dataclasses import dataclass
from typing import Any

from orchid_predict.core.schema import PredictionOperation


@dataclass(frozen=True)
class RequestSignature:
    """Deterministic serialization of one outbound remote call.

    Built only from the payload actually sent (plus the operation it is
    sent to), never from the rest of the form.
    """

    value: str

    @classmethod
    def from_payload(
        cls,
        operation: PredictionOperation,
        payload: dict[str, Any],
    ) -> "RequestSignature":
        serialized = json.dumps(
            {"operation": operation.value, "payload": payload},
            sort_keys=True,
            ensure_ascii=False,
            default=str,
        )
        return cls(serialized)
