"""Entity ID generator.

Generates opaque entity IDs in ``id_<epoch-ms>_<random>`` format and
guarantees uniqueness against the ids already present in a collection.
"""

import re
import secrets
import string
import time
from typing import Callable, Container

ALPHABET = string.ascii_lowercase + string.digits


class EntityIdGenerator:
    """Generator for unique entity IDs.

    Example IDs: id_1718200000000_k3j9x0q2m, id_1718200000001_a0b1c2d3e
    """

    PATTERN = re.compile(r"^id_\d+_[a-z0-9]{9}$")
    SUFFIX_LENGTH = 9
    MAX_ATTEMPTS = 100

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock

    @classmethod
    def validate(cls, entity_id: str) -> bool:
        """Check whether an id has the generated format.

        Ids supplied by callers or read from snapshots may use any
        non-empty string; this only recognizes ids this class produced.
        """
        if not isinstance(entity_id, str):
            return False
        return bool(cls.PATTERN.match(entity_id))

    def _candidate(self) -> str:
        millis = int(self._clock() * 1000)
        suffix = "".join(secrets.choice(ALPHABET) for _ in range(self.SUFFIX_LENGTH))
        return f"id_{millis}_{suffix}"

    def generate(self, existing: Container[str] = ()) -> str:
        """Generate an id not contained in ``existing``.

        Raises:
            RuntimeError: If no free id was found after MAX_ATTEMPTS tries.
        """
        for _ in range(self.MAX_ATTEMPTS):
            candidate = self._candidate()
            if candidate not in existing:
                return candidate
        raise RuntimeError("Unable to generate a unique entity id")
