import logging
import sys
import json
import inspect
import datetime
from pathlib import Path
from functools import wraps
import traceback

log_dir = Path(__file__).parent
log_dir.mkdir(exist_ok=True)

# Константы для цветного вывода
BLUE = '\033[94m'
GREEN = '\033[92m'
YELLOW = '\033[93m'
RED = '\033[91m'
PURPLE = '\033[95m'
CYAN = '\033[96m'
BOLD = '\033[1m'
END = '\033[0m'


def format_object(obj):
    if hasattr(obj, 'model_dump'):
        return str(obj.model_dump())
    if hasattr(obj, '__dict__'):
        return str(obj.__dict__)
    if isinstance(obj, (list, dict, tuple, set)):
        try:
            return json.dumps(obj, indent=2, ensure_ascii=False, default=str)
        except (TypeError, ValueError):
            return str(obj)
    return str(obj)


class DebugLogger:
    """Debug logger with caller information and colored output"""

    def __init__(self, name="debug", level=logging.DEBUG):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(level)
        self.logger.propagate = False

        if self.logger.handlers:
            self.logger.handlers.clear()

        formatter = logging.Formatter(
            '%(asctime)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s'
        )

        file_handler = logging.FileHandler(log_dir / "debug.log", encoding='utf-8')
        file_handler.setFormatter(formatter)
        file_handler.setLevel(level)

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(formatter)
        console_handler.setLevel(level)

        self.logger.addHandler(file_handler)
        self.logger.addHandler(console_handler)

    def debug(self, message, *args, **kwargs):
        """Debug message prefixed with the calling location"""
        frame = inspect.currentframe().f_back
        filename = frame.f_code.co_filename
        lineno = frame.f_lineno
        function = frame.f_code.co_name

        # Относительный путь внутри пакета
        if "src" in filename:
            filename = filename[filename.index("src"):]

        caller_info = f"{BLUE}[{filename}:{lineno} - {function}]{END}"
        self.logger.debug(f"{caller_info} {message}", *args, **kwargs)

    def info(self, message, *args, **kwargs):
        self.logger.info(f"{GREEN}{message}{END}", *args, **kwargs)

    def warning(self, message, *args, **kwargs):
        self.logger.warning(f"{YELLOW}{message}{END}", *args, **kwargs)

    def error(self, message, *args, **kwargs):
        """Error message with the active traceback attached"""
        trace = traceback.format_exc()
        if trace and trace != 'NoneType: None\n':
            message = f"{message}\n{RED}Traceback:{END}\n{trace}"
        self.logger.error(f"{RED}{message}{END}", *args, **kwargs)

    def start_func(self, func_name, params=None):
        params_str = f" params: {format_object(params)}" if params else ""
        self.debug(f"{PURPLE}Start {func_name}{END}{params_str}")

    def end_func(self, func_name, result=None, execution_time=None):
        result_str = ""
        if result is not None:
            formatted = format_object(result)
            result_str = f", result: {formatted[:1000]}"
            if len(formatted) > 1000:
                result_str += "... [truncated]"

        time_str = f", took {execution_time:.4f}s" if execution_time else ""
        self.debug(f"{PURPLE}End {func_name}{END}{result_str}{time_str}")

    def log_exception(self, message="Exception raised"):
        exc_type, exc_value, _ = sys.exc_info()
        if exc_type:
            self.logger.error(f"{RED}{message}: {exc_type.__name__}: {exc_value}{END}", exc_info=True)
        else:
            self.error(message)

    def log_request(self, request, extra_info=None):
        """Log an incoming HTTP request"""
        method = getattr(request, 'method', 'UNKNOWN')
        url = str(getattr(request, 'url', 'UNKNOWN'))
        client = getattr(request, 'client', None)
        client_host = client.host if client else "unknown"

        info = f"{CYAN}HTTP request:{END} {method} {url} {CYAN}client:{END} {client_host}"
        if extra_info:
            info += f"\n{CYAN}Extra:{END} {extra_info}"

        self.debug(info)

    def log_response(self, response, process_time=None):
        """Log an outgoing HTTP response"""
        status_code = getattr(response, 'status_code', 0)
        color = GREEN if 200 <= status_code < 400 else YELLOW if 400 <= status_code < 500 else RED

        info = f"{CYAN}HTTP response:{END} {color}status {status_code}{END}"
        if process_time is not None:
            info += f" {CYAN}in{END} {process_time:.3f}s"

        self.debug(info)


def _collect_args(func, args, kwargs):
    func_args = dict(zip(inspect.getfullargspec(func).args, args))
    func_args.update(kwargs)
    # Сессию БД, self и cls не логируем
    for skipped in ('self', 'cls', 'db'):
        func_args.pop(skipped, None)
    return func_args


def log_function(logger=None):
    """Decorator logging entry, exit and failures of sync and async functions"""
    if logger is None:
        logger = debug_logger

    def decorator(func):
        if inspect.iscoroutinefunction(func):
            @wraps(func)
            async def async_wrapper(*args, **kwargs):
                start_time = datetime.datetime.now()
                logger.start_func(func.__name__, _collect_args(func, args, kwargs))
                try:
                    result = await func(*args, **kwargs)
                except Exception:
                    logger.log_exception(f"Error in {func.__name__}")
                    raise
                execution_time = (datetime.datetime.now() - start_time).total_seconds()
                logger.end_func(func.__name__, result, execution_time)
                return result

            return async_wrapper

        @wraps(func)
        def wrapper(*args, **kwargs):
            start_time = datetime.datetime.now()
            logger.start_func(func.__name__, _collect_args(func, args, kwargs))
            try:
                result = func(*args, **kwargs)
            except Exception:
                logger.log_exception(f"Error in {func.__name__}")
                raise
            execution_time = (datetime.datetime.now() - start_time).total_seconds()
            logger.end_func(func.__name__, result, execution_time)
            return result

        return wrapper

    return decorator


debug_logger = DebugLogger()
