"""
Acquisition Module
素材获取状态机
"""
from .cancellation import CancellationToken
from .orchestrator import AcquisitionOrchestrator

__all__ = [
    "CancellationToken",
    "AcquisitionOrchestrator",
]
