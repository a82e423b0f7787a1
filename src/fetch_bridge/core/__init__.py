"""
Fetch orchestration core.
"""
from .orchestrator import FetchOrchestrator

__all__ = ["FetchOrchestrator"]
