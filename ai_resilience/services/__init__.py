"""
Services module.

Contains request orchestration services for the application.
"""

from ai_resilience.services.offline_ai_service import OfflineAIService

__all__ = ["OfflineAIService"]
