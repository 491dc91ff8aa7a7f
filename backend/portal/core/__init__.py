"""
Core module for application configuration and the exam-session workflow.

Note: the workflow and store modules are not imported at package level to
avoid circular imports with portal.models (which imports config and
datetime_utils from portal.core). Import them directly:

    from portal.core.session_workflow import ExamSessionWorkflow
"""
from .config import settings

__all__ = ["settings"]
