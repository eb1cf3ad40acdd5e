"""Pipeline tasks: backup, upload, retention sweep, notification."""

from pgwarden.tasks.backup import BackupTask, backup_task_id
from pgwarden.tasks.notify import Notifier
from pgwarden.tasks.retention import RetentionCleaner
from pgwarden.tasks.upload import UploadTask, upload_task_id

__all__ = [
    "BackupTask",
    "Notifier",
    "RetentionCleaner",
    "UploadTask",
    "backup_task_id",
    "upload_task_id",
]
