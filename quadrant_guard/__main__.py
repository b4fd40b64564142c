"""Entry point for the regional funding round simulations"""
import json
import logging
import sys
import traceback

from quadrant_guard.config import settings
from quadrant_guard.harness import Simulation
from quadrant_guard.reporting import write_reports
from quadrant_guard.scoring import build_scorer

logging.basicConfig(level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO), format='%(message)s')
logger = logging.getLogger(__name__)


def run() -> None:
    """Run every preset simulation and write the reports."""
    try:
        logger.info("Using configuration:")
        logger.info(json.dumps(settings.model_dump(), indent=2))

        results = {}
        for config in settings.simulation_configs():
            scorer = build_scorer(settings.SCORER, settings.scoring_config.with_threshold(config.threshold))
            results[config.name] = Simulation(config, scorer=scorer, max_workers=settings.MAX_WORKERS).run()

        for name, result in results.items():
            metrics = result.metrics
            logger.info(f"{name}:")
            logger.info(f"  Accuracy: {metrics.accuracy:.2%}")
            logger.info(f"  Precision: {metrics.precision:.2%}")
            logger.info(f"  Recall: {metrics.recall:.2%}")
            logger.info(f"  F1 Score: {metrics.f1_score:.2%}")
            logger.info(f"  False Positive Rate: {metrics.false_positive_rate:.2%}")
            logger.info(f"  Processing Time: {result.processing_time_ms:.1f}ms")

        paths = write_reports(results, settings.OUTPUT_DIR, settings.REPORT_PREFIX)
        logger.info(f"Simulation complete: {json.dumps(paths)}")

    except Exception as e:
        logger.error(f"Error during simulation run: {e}")
        traceback.print_exc()
        sys.exit(1)


if __name__ == "__main__":
    run()
