from .incremental_worker import IncrementalSignals, IncrementalWorker
from .scanner_worker import ScannerSignals, ScannerWorker

__all__ = ["IncrementalSignals", "IncrementalWorker", "ScannerSignals", "ScannerWorker"]
