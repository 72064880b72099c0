import logging
import copy
from src.utils.colors import Colors


class ColoredFormatter(logging.Formatter):
    """
    Console formatter that colours level names and highlights cycle events.
    File handlers use the plain formatter so log files stay free of ANSI codes.
    """

    LEVEL_COLORS = {
        logging.DEBUG: Colors.GREY,
        logging.INFO: Colors.BLUE,
        logging.WARNING: Colors.YELLOW,
        logging.ERROR: Colors.RED,
        logging.CRITICAL: Colors.BOLD + Colors.RED
    }

    def format(self, record):
        # Copy so other handlers see the uncoloured record
        record = copy.copy(record)

        color = self.LEVEL_COLORS.get(record.levelno, Colors.RESET)
        record.levelname = f"{color}{record.levelname}{Colors.RESET}"

        if isinstance(record.msg, str):
            if "Fetch Cycle" in record.msg:
                record.msg = f"{Colors.MAGENTA}{Colors.BOLD}{record.msg}{Colors.RESET}"
            elif "Waiting" in record.msg and "seconds until next fetch" in record.msg:
                record.msg = f"{Colors.GREY}{record.msg}{Colors.RESET}"
            elif "Cycle complete" in record.msg:
                record.msg = f"{Colors.GREEN}{record.msg}{Colors.RESET}"

        return super().format(record)
