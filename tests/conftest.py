import os
import sys

# Make the repository root importable when the package is not installed
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

# Keep the module-level Settings() independent from the developer's shell / .env
os.environ.setdefault("JIRA_BASE_URL", "")
os.environ.setdefault("LLM_PROVIDER", "openai")
os.environ.setdefault("TRIAGE_PROJECT_KEY", "COD")
os.environ.setdefault("ENABLE_METRICS", "true")
