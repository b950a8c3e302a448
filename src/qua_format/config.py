import os
from dotenv import load_dotenv

# Load .env (if present) so env-based configuration works in dev
load_dotenv()

# Text encoding used for chart files and binary streams
ENCODING = os.getenv("QUA_ENCODING", "utf-8")

# Emitter settings. A wide line keeps long titles and tags on one line.
YAML_WIDTH = int(os.getenv("QUA_YAML_WIDTH", "4096"))
ALLOW_UNICODE = os.getenv("QUA_ALLOW_UNICODE", "1") in ("1", "true", "True")
