"""
Periodic evaluation of electricity-price automation rules
"""
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger
import logging
import asyncio

from garge.database import settings
from garge.services.automation_processing import process_electricity_price

logger = logging.getLogger(__name__)
scheduler = BackgroundScheduler()

def evaluate_electricity_price_rules():
    """Re-evaluate rules on the price feed against the latest stored price"""
    try:
        result = asyncio.run(process_electricity_price())
        if result.get("success"):
            logger.info(
                f"Evaluated {result.get('evaluated', 0)} electricity price rule(s), "
                f"{result.get('triggered', 0)} triggered"
            )
        else:
            logger.warning(f"Electricity price evaluation failed: {result.get('message')}")
    except Exception as e:
        logger.error(f"Error in scheduled electricity price evaluation: {str(e)}")

def start_scheduler():
    """Start the scheduler when in-process automation is enabled"""
    if not settings.automation_processing_enabled:
        logger.info("Automation processing disabled, scheduler not started")
        return

    if not scheduler.running:
        scheduler.add_job(
            evaluate_electricity_price_rules,
            IntervalTrigger(seconds=settings.electricity_price_tick_seconds),
            id='electricity_price_evaluation',
            replace_existing=True
        )
        scheduler.start()
        logger.info(f"Electricity price scheduler started (interval: {settings.electricity_price_tick_seconds}s)")

def stop_scheduler():
    """Stop the scheduler"""
    if scheduler.running:
        scheduler.shutdown()
        logger.info("Electricity price scheduler stopped")
