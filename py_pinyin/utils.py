import logging
import sys
import time


def create_logger(tag: str, verbose: bool = True):
    default_fields = logging.getLogRecordFactory()
    t0 = time.perf_counter()

    # https://stackoverflow.com/questions/63056270/python-logging-time-since-start-in-seconds
    def record_factory(*args, **kwargs):
        record = default_fields(*args, **kwargs)
        record.uptime = time.perf_counter() - t0
        record.level_nocaps = record.levelname.lower()
        return record

    # only wrap the stock factory once, repeated decoders would otherwise nest factories
    if not getattr(default_fields, "_py_pinyin", False):
        record_factory._py_pinyin = True
        logging.setLogRecordFactory(record_factory)
    logger = logging.getLogger(f"py_pinyin.{tag}")
    logger.setLevel(logging.DEBUG)

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setLevel(logging.DEBUG if verbose else logging.INFO)
        formatter = logging.Formatter(f"[%(uptime)6.1fs][{tag}] %(message)s")
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    return logger


def log_examples(logger, items_with_scores: list[tuple[str, float]], score_label="score", n=5):
    """Logs a sorted listing of (label, score) pairs, eliding the middle when there are many."""
    items_with_scores.sort(key=lambda x: x[1])
    for i, (label, score) in enumerate(items_with_scores):
        if len(items_with_scores) > 2 * n:
            if i == n:
                logger.debug("   │  ├─ ...")
            if n < i < len(items_with_scores) - n:
                continue
        list_item = " ├─" if i < len(items_with_scores) - 1 else " └─"
        logger.debug(f"   │ {list_item} {label:25}  {score_label} = {score:10.4g}")
