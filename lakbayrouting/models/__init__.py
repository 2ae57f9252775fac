from .network import Coordinate, Stop, Route, Terminal, Directory
from .trip import (
    CostMetric,
    SearchConfig,
    Direction,
    PathType,
    SegmentStep,
    Segment,
    CandidatePath,
    ItineraryStep,
    LegGeometry,
    Itinerary,
    TripPlan,
)
