import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent / "src"))

from printle.config import Config
from printle.logging_config import setup_logging
from printle.server import create_app

if __name__ == "__main__":
    setup_logging(Config.LOG_LEVEL, Config.LOG_DIR)
    app = create_app(Config)
    app.run(host=Config.HOST, port=Config.PORT, threaded=True)
