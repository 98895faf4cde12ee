from hrms.client.poller import NotificationPoller

__all__ = ["NotificationPoller"]
