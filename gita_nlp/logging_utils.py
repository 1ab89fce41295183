import logging, datetime, pathlib

FMT = "%(asctime)s  %(levelname)-8s %(name)s :: %(message)s"


def init_logger(name: str, cfg, tag: str = "full-run"):
    ts = datetime.datetime.now().strftime("%Y%m%d-%H%M%S")
    log_dir = pathlib.Path(cfg["log_dir"])
    log_dir.mkdir(parents=True, exist_ok=True)
    log_path = log_dir / f"log_{tag}_{ts}.txt"

    logger = logging.getLogger(name)
    # re-running main() in one process must not stack handlers
    for old in logger.handlers[:]:
        logger.removeHandler(old)
        old.close()

    formatter = logging.Formatter(FMT)
    file_handler = logging.FileHandler(log_path, encoding="utf-8")   # timestamped filename
    file_handler.setFormatter(formatter)
    console = logging.StreamHandler()
    console.setFormatter(formatter)

    logger.setLevel(cfg.get("log_level", "INFO"))
    logger.addHandler(file_handler)
    logger.addHandler(console)
    logger.propagate = False
    return logger
