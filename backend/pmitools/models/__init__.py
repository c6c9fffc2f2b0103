from .User import User, TokenBlocklist
from .AuditLog import AuditLog
from .Cohort import Program, Cohort, Student
from .LabDay import LabDay, LabDayAttendance
from .Site import Agency, ClinicalSite, ClinicalSiteVisit
from .Internship import StudentInternship, StudentClinicalHours, StudentShift
from .base import TimestampMixin, CapacityMixin, AttendanceStatusEnum, StudentStatusEnum, InternshipStatusEnum
