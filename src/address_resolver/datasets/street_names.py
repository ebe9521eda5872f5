"""Street-segment names used only for prefix search."""

from __future__ import annotations

from typing import Any, ClassVar, Optional

from pydantic import BaseModel, Field, model_validator
from shapely.geometry.base import BaseGeometry

from ..data_loader import DatasetLoader, first_present
from ..geocoding.normalizers import normalize_street_text

SEGMENT_NAME_KEYS = ("רחוב", "street", "street_name")


class StreetNameRecord(BaseModel):
    display_name: str = Field(min_length=1)
    normalized: str = Field(min_length=1)

    @model_validator(mode="before")
    @classmethod
    def _derive_normalized(cls, data: Any) -> Any:
        if isinstance(data, dict) and "normalized" not in data:
            display = str(data.get("display_name", "")).strip()
            data = {"display_name": display, "normalized": normalize_street_text(display)}
        return data


class StreetNamesLoader(DatasetLoader):
    DATASET: ClassVar[str] = "street_names"
    RECORD_MODEL: ClassVar[type[BaseModel]] = StreetNameRecord

    def _parse(self, properties: dict[str, Any], geometry: Optional[BaseGeometry]) -> Optional[dict[str, Any]]:
        name = first_present(properties, SEGMENT_NAME_KEYS)
        if name is None:
            return None
        return {"display_name": str(name)}

    def _to_record(self, model: StreetNameRecord) -> tuple[str, str]:
        return model.display_name, model.normalized
