"""Workout payloads accepted by GarminConnect.add_workout()."""

from typing import Any, Dict, Optional, Protocol, Union, runtime_checkable

DEFAULT_DESCRIPTION = "Added by garmin-connect for Python"

# Fields the service assigns; they must not be sent back when creating a copy
SERVER_OWNED_FIELDS = ("workoutId", "ownerId", "updatedDate", "createdDate", "author")

RUNNING_SPORT_TYPE = {"sportTypeId": 1, "sportTypeKey": "running"}


@runtime_checkable
class WorkoutBuilder(Protocol):
    def validate(self) -> bool:
        ...

    def to_json(self) -> Dict[str, Any]:
        ...


class RunningWorkout:
    """A single-step running workout over a fixed distance."""

    def __init__(self, name: str = "", distance: float = 0, description: Optional[str] = None):
        self.name = name
        self.distance = distance  # meters
        self.description = description

    def validate(self) -> bool:
        return bool(self.name) and self.distance > 0

    def to_json(self) -> Dict[str, Any]:
        return {
            "sportType": dict(RUNNING_SPORT_TYPE),
            "workoutName": self.name,
            "description": self.description,
            "workoutSegments": [
                {
                    "segmentOrder": 1,
                    "sportType": dict(RUNNING_SPORT_TYPE),
                    "workoutSteps": [
                        {
                            "type": "ExecutableStepDTO",
                            "stepOrder": 1,
                            "stepType": {"stepTypeId": 3, "stepTypeKey": "interval"},
                            "endCondition": {"conditionTypeId": 3, "conditionTypeKey": "distance"},
                            "endConditionValue": self.distance,
                            "preferredEndConditionUnit": {"unitKey": "kilometer"},
                            "targetType": {
                                "workoutTargetTypeId": 1,
                                "workoutTargetTypeKey": "no.target",
                            },
                        }
                    ],
                }
            ],
        }


def workout_payload(workout: Union[WorkoutBuilder, Dict[str, Any]]) -> Dict[str, Any]:
    """Request body for creating ``workout``.

    Anything exposing validate() and to_json() is serialized through them;
    otherwise the value is treated as a raw workout dict, e.g. one fetched
    with get_workout_detail().
    """
    if not workout:
        raise ValueError("Missing workout")

    if callable(getattr(workout, "validate", None)) and callable(getattr(workout, "to_json", None)):
        if not workout.validate():
            raise ValueError(f"Invalid workout: {workout!r}")
        data = dict(workout.to_json())
    elif isinstance(workout, dict):
        data = {k: v for k, v in workout.items() if k not in SERVER_OWNED_FIELDS}
    else:
        raise TypeError(f"Unsupported workout value: {type(workout).__name__}")

    if not data.get("description"):
        data["description"] = DEFAULT_DESCRIPTION
    return data
