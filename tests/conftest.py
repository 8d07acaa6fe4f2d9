import os
import sys
from pathlib import Path

ROOT_DIR = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT_DIR))

os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("IMAGE_PROVIDER", "leonardo")
os.environ.setdefault("GENERATE_IMAGES_BY_DEFAULT", "false")
os.environ.setdefault("EXPOSE_UPSTREAM_DETAILS", "false")
