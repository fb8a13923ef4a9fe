"""
Configuration constants for the Course Workload Scheduler.
All configurable settings are defined here.
"""

import os
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# Persistence
# The snapshot file holds a single JSON object keyed by STORAGE_KEY.
DATA_FILE = os.getenv(
    "WORKLOAD_SCHEDULER_DATA_FILE",
    os.path.join(os.path.dirname(os.path.dirname(os.path.dirname(__file__))), "data", "workload_scheduler.json")
)
STORAGE_KEY = "workloadSchedulerData"

# Logging
LOG_LEVEL = os.getenv("WORKLOAD_SCHEDULER_LOG_LEVEL", "INFO").upper()

# API
CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("WORKLOAD_SCHEDULER_CORS_ORIGINS", "http://localhost:3000").split(",")
    if origin.strip()
]

# Days of Week
WEEKDAYS = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday"]
ARRANGED_DAY = "Arranged"
DAYS = WEEKDAYS + [ARRANGED_DAY]

# "Arranged" has no real intervals, only this one pseudo-slot
ARRANGED_SLOT = "arranged"

# Delivery modes for a placed course
MODALITY_IN_PERSON = "in-person"
MODALITY_ONLINE = "online"
MODALITY_HYBRID = "hybrid"
MODALITIES = [MODALITY_IN_PERSON, MODALITY_ONLINE, MODALITY_HYBRID]

# Academic terms a schedule variant can target
QUARTERS = ["Fall", "Winter", "Spring", "Summer"]

# Defaults
DEFAULT_SCHEDULE_NAME = "Default Schedule"
DEFAULT_INSTRUCTOR_COLOR = "#3498db"
DEFAULT_COURSE_CREDITS = 1

# Assignment keys are "courseId::section" once serialized
SECTION_SEPARATOR = "::"

# More than this many in-person placements at one (day, slot) is over capacity
MAX_IN_PERSON_PER_SLOT = 1

# Export/Import document versions
EXPORT_VERSION = "4.0"
SUPPORTED_IMPORT_VERSIONS = ["1.0", "2.0", "3.0", "4.0"]
