# scheduler.py
from apscheduler.schedulers.background import BackgroundScheduler

# Shared by the periodic jobs registered in main.py and by one-shot
# notification deliveries.
scheduler = BackgroundScheduler(job_defaults={"misfire_grace_time": 60 * 60, "coalesce": True})
