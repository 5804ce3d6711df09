import logging
import os
from datetime import datetime
from logging import WARNING, FileHandler
from logging.handlers import TimedRotatingFileHandler

LOG_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


class GetLog:
    logger = None
    log_folder = None

    @classmethod
    def get_log(cls, level="info", log_dir="./logs", shared_log_folder=None):
        """Get logger and initialize logging system.

        Args:
            level (str): Console and main log level, one of debug/info/warning/error
            log_dir (str): Parent folder for per-run log folders
            shared_log_folder (str): Existing log folder to reuse instead of a new one
        """
        if cls.logger is None:
            if shared_log_folder:
                cls.log_folder = shared_log_folder
            else:
                current_time = datetime.now().strftime("%Y-%m-%d_%H-%M-%S")
                cls.log_folder = os.path.join(log_dir, current_time)

                # Reports reuse the run timestamp
                os.environ["TEXTQA_TIMESTAMP"] = current_time

            os.makedirs(cls.log_folder, exist_ok=True)

            log_level = LOG_LEVELS.get(str(level).lower(), logging.INFO)
            cls.logger = logging.getLogger()
            cls.logger.setLevel(log_level)

            fmt = "%(asctime)s %(levelname)s [%(name)s] [%(filename)s (%(funcName)s:%(lineno)d)] - %(message)s"
            fm = logging.Formatter(fmt)

            # Main log file, rotated daily
            th = TimedRotatingFileHandler(
                filename=os.path.join(cls.log_folder, "log.log"),
                when="midnight",
                interval=1,
                backupCount=3,
                encoding="utf-8",
            )
            th.setLevel(log_level)
            th.setFormatter(fm)
            cls.logger.addHandler(th)

            # Warnings and errors only
            error_handler = FileHandler(filename=os.path.join(cls.log_folder, "error.log"), encoding="utf-8")
            error_handler.setLevel(WARNING)
            error_handler.setFormatter(fm)
            cls.logger.addHandler(error_handler)

            console_handler = logging.StreamHandler()
            console_handler.setLevel(log_level)
            console_handler.setFormatter(fm)
            cls.logger.addHandler(console_handler)

        return cls.logger
