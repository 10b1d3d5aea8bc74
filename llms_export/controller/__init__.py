"""Run orchestration: one unit of work per polling step."""

from llms_export.controller.controller import RunController
from llms_export.controller.factory import build_controller, build_source
from llms_export.controller.models import ItemCounts, LastItem, StepResponse


__all__ = [
    "ItemCounts",
    "LastItem",
    "RunController",
    "StepResponse",
    "build_controller",
    "build_source",
]
