import argparse
import time
import schedule
import logging
import sys
from sqlalchemy.exc import SQLAlchemyError

from config.app_config import LIFECYCLE_SWEEP_MINUTES, REMINDER_SWEEP_MINUTES, WORKER_LOG_FILE
from database.config import get_db_context
from services.campaign_lifecycle import CampaignLifecycleService

# Configure Logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(sys.stdout),
        logging.FileHandler(WORKER_LOG_FILE)
    ]
)


def run_transition_cycle():
    logging.info("Starting campaign transition sweep...")
    try:
        with get_db_context() as db:
            transitions = CampaignLifecycleService(db).check_transitions()
        logging.info(f"Sweep complete. {len(transitions)} campaigns transitioned.")
    except SQLAlchemyError as e:
        logging.error(f"Error in transition sweep: {e}")


def run_reminder_cycle():
    logging.info("Starting deadline reminder sweep...")
    try:
        with get_db_context() as db:
            result = CampaignLifecycleService(db).check_deadline_reminders()
        logging.info(f"Sweep complete. {result['reminders_sent']} reminders sent.")
    except SQLAlchemyError as e:
        logging.error(f"Error in reminder sweep: {e}")


ACTIONS = {
    "check-transitions": [run_transition_cycle],
    "check-deadline-reminders": [run_reminder_cycle],
    "all": [run_transition_cycle, run_reminder_cycle],
}


def start_scheduler(action: str):
    logging.info(
        f"Starting Lifecycle Scheduler (transitions every {LIFECYCLE_SWEEP_MINUTES} min, "
        f"reminders every {REMINDER_SWEEP_MINUTES} min)..."
    )
    # Run once immediately
    for job in ACTIONS[action]:
        job()

    if run_transition_cycle in ACTIONS[action]:
        schedule.every(LIFECYCLE_SWEEP_MINUTES).minutes.do(run_transition_cycle)
    if run_reminder_cycle in ACTIONS[action]:
        schedule.every(REMINDER_SWEEP_MINUTES).minutes.do(run_reminder_cycle)

    while True:
        schedule.run_pending()
        time.sleep(30)


def main():
    parser = argparse.ArgumentParser(description="Campaign Lifecycle Worker")
    parser.add_argument("--mode", choices=["once", "schedule"], default="schedule", help="Run once or schedule")
    parser.add_argument("--action", choices=sorted(ACTIONS), default="all", help="Which sweep to run")
    args = parser.parse_args()

    if args.mode == "schedule":
        start_scheduler(args.action)
    else:
        for job in ACTIONS[args.action]:
            job()


if __name__ == "__main__":
    main()
