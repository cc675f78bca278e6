"""Subject field provider exports."""

from decisionflow.providers.base import SubjectFieldProvider, adf_document
from decisionflow.providers.jira import JiraSubjectFieldProvider
from decisionflow.providers.stored import StoredSubjectFieldProvider

__all__ = [
    "JiraSubjectFieldProvider",
    "StoredSubjectFieldProvider",
    "SubjectFieldProvider",
    "adf_document",
]
