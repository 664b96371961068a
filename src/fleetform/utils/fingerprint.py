"""Content fingerprints for container plans."""

import hashlib
import json
from typing import Any

from fleetform.models.container import ContainerPlan


# 16 hex chars = 64 bits of the digest
FINGERPRINT_LENGTH = 16


def canonical_json(data: Any) -> str:
    """Serialize data with sorted keys and no insignificant whitespace."""
    return json.dumps(data, sort_keys=True, separators=(",", ":"), ensure_ascii=False, default=str)


def fingerprint_plan(plan: ContainerPlan) -> str:
    """Fingerprint a container plan.

    Identical plan content always gives the same value, whatever order the
    fields were declared in. The result only contains ``[0-9a-f]`` so it can
    be stored as a label value.
    """
    payload = canonical_json(plan.model_dump(mode="json"))
    digest = hashlib.sha256(payload.encode("utf-8")).hexdigest()
    return digest[:FINGERPRINT_LENGTH]
