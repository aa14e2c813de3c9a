# Schemas package (re-export feature modules for stable imports)
from .appointments.appointment import *
from .schedules.schedule import *
from .common.common import *
