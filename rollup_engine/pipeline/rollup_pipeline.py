from pathlib import Path

from rollup_engine.common.errors import ConfigError
from rollup_engine.io_modules.config_reader import SourceConfig
from rollup_engine.io_modules.record_loader import load_from_source
from rollup_engine.io_modules.writer import write_csv
from rollup_engine.pipeline.phase_registry import RENDERERS
from rollup_engine.report.assembler import ReportAssembler


class RollupPipeline:
    def __init__(self, config, logger):
        """config is the dict returned by resolve_config()."""
        self.config = config
        self.logger = logger

    def run(self) -> dict:
        """
        load -> rollup -> report -> outputs.
        Any error aborts the run; nothing is written from a failed rollup.
        """
        data = {}
        root_id = self.config["rollup"]["root_id"]

        self.logger.info("Load Phase started")
        data["node_set"] = self._load_nodes()

        self.logger.info("Rollup Phase started for root %d", root_id)
        data["root"] = self._run_rollup(data["node_set"], root_id)

        if self.config["report"]["enabled"]:
            self.logger.info("Report Phase started")
            assembler = ReportAssembler.from_config(self.config["report"], logger=self.logger)
            data["report"] = assembler.assemble(data["node_set"], root_id)
        else:
            self.logger.info("Report Phase skipped (disabled).")

        self._write_outputs(data)
        return data

    # -------- internal pipeline steps --------

    def _resolve(self, path) -> Path:
        return Path(self.config["base_path"]) / path

    def _load_nodes(self):
        source = SourceConfig.from_config(self.config)
        node_set = load_from_source(
            source,
            allow_zero_cost_leaves=self.config["rollup"]["allow_zero_cost_leaves"],
            logger=self.logger,
        )
        self.logger.info("Load Phase Completed. %d nodes read from %s", len(node_set), source.path)
        return node_set

    def _run_rollup(self, node_set, root_id):
        root = node_set.rollup(root_id)
        self.logger.info(
            "Rollup Phase Completed. Root '%s' | Unit Cost=%s | Total Cost=%s",
            root.name, root.unit_cost, root.total_cost
        )
        return root

    def _write_outputs(self, data):
        self.logger.info("Starting output write phase.")
        root_id = self.config["rollup"]["root_id"]
        try:
            # ---------------- CHART ----------------
            if "report" in data:
                report_cfg = self.config["report"]
                renderer_cls = RENDERERS.get(report_cfg["renderer"])
                if not renderer_cls:
                    self.logger.error("Unsupported renderer: %s", report_cfg["renderer"])
                    raise ConfigError(f"Unsupported renderer: {report_cfg['renderer']}")

                renderer = renderer_cls.from_config(report_cfg, logger=self.logger)
                data["chart_path"] = renderer.render(data["report"], self._resolve(report_cfg["output_path"]))

            # ---------------- COST BREAKDOWN ----------------
            if self.config["export"]["enabled"]:
                export_file = self._resolve(self.config["export"]["output_path"])
                df = data["node_set"].to_frame(root_id)
                write_csv(df, export_file)
                data["export_path"] = export_file
                self.logger.info("Cost breakdown written: %s (rows=%d)", export_file, df.height)
            else:
                self.logger.info("Cost breakdown export skipped (disabled).")

            self.logger.info("Output write phase completed.")

        except Exception as e:
            self.logger.critical("Failed to write output files: %s", str(e))
            raise
