"""classverify I/O package — verdict persistence only."""

from classverify.io.persistence import JsonVerdictRecorder, VerdictRecorder, load_json, save_json

__all__ = ["JsonVerdictRecorder", "VerdictRecorder", "load_json", "save_json"]
