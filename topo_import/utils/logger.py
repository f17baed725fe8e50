import logging
import sys
import os
from logging.handlers import RotatingFileHandler
from datetime import datetime

_LOGGER_NAME = "topo_import"
_PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '../..'))
_LOG_DIR = os.path.join(_PROJECT_ROOT, 'logs')
_MAX_LINES = 5000
_BACKUP_COUNT = 20
_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"

class LineRotatingFileHandler(RotatingFileHandler):
	"""
	Rotates the log by line count instead of bytes.
	Multi-line messages (diagnostics, tracebacks) count every line they write,
	and a rollover happens before the record that would overflow the file.
	"""
	def __init__(self, filename, maxLines, backupCount=0, encoding=None):
		super().__init__(filename, maxBytes=0, backupCount=backupCount, encoding=encoding)
		self.maxLines = maxLines
		self.lineCount = self._existing_lines()

	def _existing_lines(self):
		if not os.path.exists(self.baseFilename):
			return 0
		with open(self.baseFilename, 'r', encoding=self.encoding or 'utf-8') as f:
			return sum(1 for _ in f)

	def _record_lines(self, record):
		return self.format(record).count('\n') + 1

	def shouldRollover(self, record):
		if self.maxLines <= 0 or self.lineCount == 0:
			return False
		return self.lineCount + self._record_lines(record) > self.maxLines

	def doRollover(self):
		super().doRollover()
		self.lineCount = 0

	def emit(self, record):
		super().emit(record)
		self.lineCount += self._record_lines(record)

def setup_logger(level=logging.INFO, log_dir=None, log_to_file=True):
	"""
	Set up a logger that logs to both stdout and a timestamped file.
	The log file lives in <project root>/logs unless log_dir is given,
	rotates after 5000 lines and keeps the last 20 logs.
	Call this once at program startup.
	"""
	logger = logging.getLogger(_LOGGER_NAME)
	logger.setLevel(level)
	if not logger.handlers:
		# Console handler
		ch = logging.StreamHandler(sys.stdout)
		ch.setFormatter(logging.Formatter(_FORMAT))
		logger.addHandler(ch)

		if log_to_file:
			# Rotating file handler (by line count)
			target_dir = log_dir or _LOG_DIR
			os.makedirs(target_dir, exist_ok=True)
			basename = f"topo_import_{datetime.now().strftime('%Y%m%d_%H%M%S')}.log"
			fh = LineRotatingFileHandler(os.path.join(target_dir, basename), maxLines=_MAX_LINES,
										 backupCount=_BACKUP_COUNT, encoding="utf-8")
			fh.setFormatter(logging.Formatter(_FORMAT))
			logger.addHandler(fh)
	return logger

def get_logger(name=None):
	"""
	Get the shared project logger, or a named child of it.
	"""
	if name:
		return logging.getLogger(f"{_LOGGER_NAME}.{name}")
	return logging.getLogger(_LOGGER_NAME)
