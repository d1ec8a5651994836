"""Labour Scheduler - Cloud Functions.

This package allocates installer crews (van crews, foot installers and
supervisors) to the working days of construction jobs, and stores the
resulting schedules in Firestore.

Strategies:
- auto: even split over the job window, one supervisor mid-job
- balanced: even split, no supervisor
- job_length: even split over a desired number of days
- quote: crew sized from the latest quote's product lines
"""

__version__ = "1.0.0"
