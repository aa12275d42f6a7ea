import argparse

from common.workers.launcher import WorkerLauncher
from packages.scheduling.worker import SchedulerWorker


def setup_cli():
    parser = argparse.ArgumentParser(description="Run the billing scheduler")
    parser.add_argument(
        "--tick-seconds",
        type=int,
        default=None,
        help="Seconds between trigger checks (defaults to SCHEDULER_TICK_SECONDS)",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
    )
    args = parser.parse_args()
    return args, (), {"tick_seconds": args.tick_seconds}


if __name__ == "__main__":
    WorkerLauncher().run_with_cli(
        worker_factory=SchedulerWorker,
        worker_name="Billing Scheduler",
        cli_setup_func=setup_cli,
    )
