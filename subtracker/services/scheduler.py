import logging
from datetime import date, datetime

import pytz
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from sqlalchemy.orm import Session

from subtracker.config import settings
from subtracker.db import SessionLocal
from subtracker.models.subscription import Subscription
from subtracker.services.billing_calendar import classify_status, next_renewal

logger = logging.getLogger(__name__)

scheduler = BackgroundScheduler()


def process_renewal_refresh():
    """
    Recompute stored renewal dates and statuses for all subscriptions.
    This job runs daily so renewal dates that have passed roll forward
    to the next billing date.
    """
    logger.info("Starting renewal refresh job")
    db: Session = SessionLocal()

    try:
        today = datetime.now(pytz.UTC).date()
        updated = refresh_renewals(db, today)
        db.commit()
        logger.info(f"Renewal refresh job completed, {updated} subscriptions updated")

    except Exception as e:
        logger.error(f"Error in renewal refresh job: {e}")
        db.rollback()
    finally:
        db.close()


def refresh_renewals(db: Session, today: date) -> int:
    """Refresh every subscription in the session. Returns the number changed."""
    subscriptions = db.query(Subscription).all()
    logger.info(f"Found {len(subscriptions)} subscriptions to check")

    updated = 0
    for subscription in subscriptions:
        try:
            if refresh_subscription_renewal(subscription, today):
                updated += 1
        except Exception as e:
            logger.error(f"Error refreshing subscription {subscription.id}: {e}")
            continue
    return updated


def refresh_subscription_renewal(subscription: Subscription, today: date) -> bool:
    """Roll a single subscription's renewal date and status forward to today."""
    renewal_date = next_renewal(
        subscription.start_date,
        subscription.frequency,
        today,
        subscription.custom_frequency_days,
    )
    status = classify_status(renewal_date, today).value

    if subscription.renewal_date == renewal_date and subscription.status == status:
        return False

    logger.debug(
        f"Subscription {subscription.id} renewal {subscription.renewal_date} -> {renewal_date}, "
        f"status {subscription.status} -> {status}"
    )
    subscription.renewal_date = renewal_date
    subscription.status = status
    return True


def start_scheduler():
    """Start the background scheduler."""
    if not settings.enable_scheduler:
        logger.info("Scheduler is disabled via configuration")
        return

    if scheduler.running:
        logger.info("Scheduler is already running")
        return

    trigger = CronTrigger(
        hour=settings.renewal_refresh_hour,
        minute=0,
        timezone=pytz.UTC,
    )
    scheduler.add_job(
        process_renewal_refresh,
        trigger=trigger,
        id="renewal_refresh",
        name="Daily Renewal Date Refresh",
        replace_existing=True,
    )

    scheduler.start()
    logger.info(
        f"Scheduler started. Renewal refresh scheduled for {settings.renewal_refresh_hour}:00 UTC daily"
    )


def stop_scheduler():
    """Stop the background scheduler."""
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")


def run_refresh_job_now():
    """
    Manually trigger the refresh job (useful for testing).
    """
    logger.info("Manually triggering renewal refresh job")
    process_renewal_refresh()
