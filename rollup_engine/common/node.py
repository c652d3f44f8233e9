from dataclasses import dataclass
from typing import Optional


@dataclass
class Node:
    """
    One line item of the product breakdown structure.

    unit_cost is either given by the input or derived once by the rollup;
    total_cost always follows as unit_cost * count.
    """
    id: int
    parent: Optional[int]
    name: str
    unit_cost: Optional[float]
    count: float
    total_cost: Optional[float] = None

    def __post_init__(self):
        if self.unit_cost is not None and self.total_cost is None:
            self.total_cost = self.unit_cost * self.count

    @property
    def is_root(self) -> bool:
        return self.parent is None

    @property
    def is_computed(self) -> bool:
        return self.unit_cost is not None

    def set_cost(self, unit_cost: float) -> None:
        if self.unit_cost is not None:
            raise RuntimeError(f"Cost of node {self.id} is already set")
        self.unit_cost = unit_cost
        self.total_cost = unit_cost * self.count
