from .config import Config, cfg
from .input_data import PlanningInput
from .main import run_planning

__all__ = ["Config", "cfg", "PlanningInput", "run_planning"]
