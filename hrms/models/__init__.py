from hrms.models.announcement import Announcement, AnnouncementView
from hrms.models.attendance import Attendance, Penalty
from hrms.models.feed import FeedPost, feed_post_mentions
from hrms.models.finance import Finance
from hrms.models.leave import Leave, LeaveType
from hrms.models.notification import Notification
from hrms.models.resignation import Resignation
from hrms.models.support import ActivityLog, Counter, SystemConfig
from hrms.models.team import Team, team_members
from hrms.models.user import User

__all__ = [
    "ActivityLog",
    "Announcement",
    "AnnouncementView",
    "Attendance",
    "Counter",
    "FeedPost",
    "Finance",
    "Leave",
    "LeaveType",
    "Notification",
    "Penalty",
    "Resignation",
    "SystemConfig",
    "Team",
    "User",
    "feed_post_mentions",
    "team_members",
]
