from __future__ import annotations

import os
import tempfile

# Settings are read once at import time, so the environment has to be in place
# before any test module imports the package.
os.environ["DATA_DIR"] = tempfile.mkdtemp(prefix="blueprint-tests-")
os.environ["LLM_PROVIDER"] = "mock"
os.environ["SEARCH_PROVIDER"] = "mock"
os.environ["OPENAI_API_KEY"] = ""
os.environ["SERPER_API_KEY"] = ""
os.environ["ENVIRONMENT"] = "test"
