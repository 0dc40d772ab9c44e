from rank_monitor.db.models.domain import Domain, RefreshFrequency
from rank_monitor.db.models.keyword import CheckingStatus, Keyword, KeywordStatus
from rank_monitor.db.models.keyword_check_job import JobStatus, KeywordCheckJob
from rank_monitor.db.models.keyword_position import KeywordPosition

__all__ = [
    "Domain",
    "RefreshFrequency",
    "Keyword",
    "KeywordStatus",
    "CheckingStatus",
    "KeywordCheckJob",
    "JobStatus",
    "KeywordPosition",
]
