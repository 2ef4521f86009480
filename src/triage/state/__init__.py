"""Progress session and classified email persistence."""

from triage.state.classified import (
    ClassifiedEmailStore,
    InMemoryClassifiedEmailStore,
    SqliteClassifiedEmailStore,
)
from triage.state.notifier import ProgressNotifier
from triage.state.schema import (
    close_database,
    init_classified_email_table,
    init_progress_table,
    open_database,
)
from triage.state.store import InMemoryProgressStore, ProgressStore, SqliteProgressStore

__all__ = [
    "ClassifiedEmailStore",
    "InMemoryClassifiedEmailStore",
    "InMemoryProgressStore",
    "ProgressNotifier",
    "ProgressStore",
    "SqliteClassifiedEmailStore",
    "SqliteProgressStore",
    "close_database",
    "init_classified_email_table",
    "init_progress_table",
    "open_database",
]
