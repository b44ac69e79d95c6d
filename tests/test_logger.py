from loguru import logger

from testnet_deployer.utils.logger import configure_logger


def test_prefix_from_bound_context(tmp_path):
    log_file = tmp_path / "run.log"
    configure_logger(verbose=True, log_file=str(log_file))
    try:
        with logger.contextualize(host="mach1"):
            with logger.contextualize(stage="identity"):
                logger.info("waiting")
        logger.info("plain")
    finally:
        logger.remove()
        configure_logger()

    text = log_file.read_text()
    assert "[mach1] [identity] waiting" in text
    assert " - plain" in text
    assert "test_logger.py" in text
