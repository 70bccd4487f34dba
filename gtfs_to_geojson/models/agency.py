from pathlib import Path

from pydantic import BaseModel, ConfigDict


class AgencyDescriptor(BaseModel):
    """One GTFS source: a local zip/directory (`path`) or a remote zip (`url`)"""

    model_config = ConfigDict(frozen=True, extra="allow")

    agency_key: str
    path: Path | None = None
    url: str | None = None
