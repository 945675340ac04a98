from .step_10_homebrew import HomebrewStep
from .step_20_bundle import AppsStep, FontsStep, TapsStep, ToolsStep
from .step_60_python import PythonStep
from .step_70_update import UpdateStep
from .step_80_clean import CleanStep

__all__ = [
    "HomebrewStep",
    "TapsStep",
    "ToolsStep",
    "AppsStep",
    "FontsStep",
    "PythonStep",
    "UpdateStep",
    "CleanStep",
]
