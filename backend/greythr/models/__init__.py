from .announcement import Announcement
from .attendance import Attendance
from .chat import Chat, Message
from .employee import Employee
from .leave import Leave
from .notification import Notification
from .payroll import Payroll
from .task import Task, TaskComment
from .user import User

__all__ = [
    "User",
    "Employee",
    "Attendance",
    "Leave",
    "Payroll",
    "Task",
    "TaskComment",
    "Announcement",
    "Chat",
    "Message",
    "Notification",
]
