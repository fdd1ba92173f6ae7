"""Custom SQLAlchemy column types.

Trait lists are validated once here, at the storage boundary, so that
every consumer of ``TestResult.traits`` sees well-formed records.
"""

from typing import Any, List, Optional

from sqlalchemy import JSON, TypeDecorator

from app.schemas.traits import dump_trait_measurements, parse_trait_measurements


class TraitMeasurementList(TypeDecorator):
    """
    An ordered list of trait measurements stored as JSON.

    - On write: each entry is validated as a TraitMeasurement; malformed
      entries are dropped before they reach the database.
    - On read: legacy rows stored as a JSON string are decoded, and entries
      that no longer validate are skipped with a warning.

    Python-side values are plain dicts (``{name, score, category,
    description, ...}``) so they serialize without further conversion.
    """

    impl = JSON
    cache_ok = True

    def process_bind_param(self, value: Optional[List[Any]], dialect) -> Any:
        """Validate and serialize a trait list for storage."""
        if value is None:
            return None
        return dump_trait_measurements(parse_trait_measurements(value))

    def process_result_value(self, value: Any, dialect) -> Optional[List[dict]]:
        """Decode stored trait data into validated dicts."""
        if value is None:
            return None
        return dump_trait_measurements(parse_trait_measurements(value))
