"""
Task lifecycle.

- task_models.py: Task, ReminderInterval, JobKey/ScheduledJob
- task_store.py: SQLite task store
- materializer.py: candidate -> Task (idempotent per share event)
- reminder_scheduler.py: Task -> keyed reminder jobs
- job_store.py: SQLite deferred-execution host
- delivery_worker.py: fire-time re-check + notification
- job_runner.py: polling loop driving the worker
- task_api.py: complete / delete / snooze / edit reminders
"""
