import io
import logging
import os
import shutil

import pytest
from dotenv import load_dotenv
from PIL import Image

from keyword_detector.common import logger
from keyword_detector.config import Config

TEST_BASE_DIR = None
TEST_LOGS_DIR = None
TEST_DATA_DIR = None

def get_test_base_dir():
    global TEST_BASE_DIR
    if TEST_BASE_DIR is None:
        raise ValueError("TEST_BASE_DIR is not set. Is the initialise fixture active?")
    return TEST_BASE_DIR

def get_test_data_dir():
    global TEST_DATA_DIR
    if TEST_DATA_DIR is None:
        raise ValueError("TEST_DATA_DIR is not set. Is the initialise fixture active?")
    return TEST_DATA_DIR

def make_image_bytes(width=400, height=200, color="white", fmt="PNG"):
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), color).save(buffer, format=fmt)
    return buffer.getvalue()

@pytest.fixture(scope="module", autouse=True)
def initialise():
    # Reset Config singleton for each test module
    Config.reset()
    """
    An optional .env file at the project root may set TEST_BASE_DIR; it
    defaults to the tests/ directory.
    """
    global TEST_BASE_DIR
    global TEST_LOGS_DIR
    global TEST_DATA_DIR

    project_root = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
    load_dotenv(dotenv_path="%s/.env" % project_root)

    TEST_BASE_DIR = os.getenv("TEST_BASE_DIR") or "%s/tests" % project_root
    os.environ["TEST_BASE_DIR"] = TEST_BASE_DIR
    TEST_LOGS_DIR = "%s/test_logs" % TEST_BASE_DIR
    TEST_DATA_DIR = "%s/data" % TEST_BASE_DIR

    config = Config("%s/configs/test_config.yaml" % TEST_DATA_DIR)

    logger.setup_logging(
        logs_dir=TEST_LOGS_DIR, console_level=logger.VERBOSE_LEVEL_NUM,
        file_level=logger.VERBOSE_LEVEL_NUM, console_only=True)

    logging.getLogger(__name__).info(f"Config initialised: {config.settings()}")

    yield

    Config.reset()
    shutil.rmtree(TEST_LOGS_DIR, ignore_errors=True)
