from pydantic import BaseModel


class Trip(BaseModel):
    # Every field is optional so that projected query results fit the model
    route_id: str | None = None
    trip_id: str | None = None
    trip_headsign: str | None = None
    direction_id: int | None = None
    shape_id: str | None = None
