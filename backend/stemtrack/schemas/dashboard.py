from pydantic import BaseModel


class DashboardOut(BaseModel):
    """Counters shown on the dashboard screen."""
    active_lines: int
    boxes_in_stock: int
    boxes_checked_out: int
    boxes_on_lines: int
    bunches_produced: int
    recipes: int
