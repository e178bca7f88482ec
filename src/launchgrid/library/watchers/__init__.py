from .directory_watcher import DirectoryWatcher
from .volume_monitor import VolumeMonitor

__all__ = ["DirectoryWatcher", "VolumeMonitor"]
