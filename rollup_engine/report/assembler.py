import logging
from dataclasses import dataclass, field

from rollup_engine.common.errors import IncompleteRollupError, NodeNotFoundError
from rollup_engine.core.node_set import NodeSet


@dataclass
class CostReport:
    """What the chart renderer receives: labels, values and a title."""
    title: str
    categories: list[str] = field(default_factory=list)
    values: list[float] = field(default_factory=list)
    root_cost: float = 0.0


class ReportAssembler:
    """
    Shapes the root's direct children into a (name, value) series.
    Child values are total_cost / value_divisor (thousands by default);
    the title shows root unit cost / title_divisor (millions by default).
    """

    def __init__(
        self,
        value_divisor: float = 1000.0,
        title_divisor: float = 1_000_000.0,
        title_template: str = "Total cost: {total:.1f} M.SEK",
        logger=None,
    ):
        self.value_divisor = value_divisor
        self.title_divisor = title_divisor
        self.title_template = title_template
        self.logger = logger or logging.getLogger(__name__)

    @classmethod
    def from_config(cls, report_cfg: dict, logger=None) -> "ReportAssembler":
        return cls(
            value_divisor=float(report_cfg["value_divisor"]),
            title_divisor=float(report_cfg["title_divisor"]),
            title_template=report_cfg["title_template"],
            logger=logger,
        )

    def format_title(self, root_cost: float) -> str:
        return self.title_template.format(total=root_cost / self.title_divisor)

    def assemble(self, node_set: NodeSet, root_id: int) -> CostReport:
        root = node_set.find(root_id)
        if root is None:
            raise NodeNotFoundError(root_id)
        if root.unit_cost is None:
            raise IncompleteRollupError(root_id)

        categories = []
        values = []
        for child in node_set.children_of(root_id):
            if child.total_cost is None:
                raise IncompleteRollupError(child.id)
            categories.append(child.name)
            values.append(child.total_cost / self.value_divisor)

        if not categories:
            self.logger.warning("Root %d has no children; report will be empty", root_id)

        report = CostReport(
            title=self.format_title(root.unit_cost),
            categories=categories,
            values=values,
            root_cost=root.unit_cost,
        )
        self.logger.info("Report assembled: %s | %d categories", report.title, len(categories))
        return report
