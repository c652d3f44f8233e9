import argparse
import sys
from pathlib import Path

from rollup_engine.common.errors import ConfigError, RollupEngineError
from rollup_engine.io_modules.config_reader import read_config, resolve_config
from rollup_engine.pipeline.rollup_pipeline import RollupPipeline
from rollup_engine.utils.logger import EngineLogger

DEFAULT_CONFIG_PATH = Path(__file__).parent / "config" / "config.yaml"


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        prog="pbs-rollup",
        description="Roll up product breakdown structure costs and chart the top level.",
    )
    parser.add_argument("-c", "--config", type=Path, default=DEFAULT_CONFIG_PATH, help="YAML config file")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)

    # 1️⃣ Load config
    try:
        config = resolve_config(read_config(args.config))
    except ConfigError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 2

    # 2️⃣ Logger
    logger = EngineLogger(
        base_path=config["base_path"],
        client=config["client"],
        level=config["log_level"],
    )

    # 3️⃣ Run
    try:
        RollupPipeline(config, logger).run()
    except ConfigError as e:
        logger.error("ERROR: %s", e)
        return 2
    except RollupEngineError as e:
        logger.error("ERROR: %s", e)
        return 1
    finally:
        logger.write_run_footer()
        logger.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
