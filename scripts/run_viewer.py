"""scripts/run_viewer.py — запуск просмотрщика (и, по желанию, mock-бэкенда)."""
import argparse
import os
import subprocess
import sys

ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
os.chdir(ROOT)

if sys.version_info < (3, 10):
    sys.exit("Python 3.10+ required (found %d.%d)" % sys.version_info[:2])

ap = argparse.ArgumentParser(description="Causal graph viewer launcher")
ap.add_argument("--port", type=int, default=8000)
ap.add_argument("--backend-url", default=None, help="telemetry API root, e.g. http://localhost:8081/api")
ap.add_argument("--mock", action="store_true", help="start the simulated backend on port 8081")
args = ap.parse_args()

env = dict(os.environ)
mock = None
if args.mock:
    print("Mock backend: http://localhost:8081/api/graph")
    mock = subprocess.Popen([sys.executable, "-m", "uvicorn", "scripts.mock_backend:app",
                             "--host", "127.0.0.1", "--port", "8081"], env=env)
    env.setdefault("CAUSALVIEW_BACKEND_BASE_URL", "http://127.0.0.1:8081/api")
if args.backend_url:
    env["CAUSALVIEW_BACKEND_BASE_URL"] = args.backend_url

print("\nCausal graph viewer: http://localhost:%d/api/view/graph" % args.port)
try:
    subprocess.run([sys.executable, "-m", "uvicorn", "api.server:app",
                    "--host", "0.0.0.0", "--port", str(args.port)], env=env)
except KeyboardInterrupt:
    print("\nServer stopped.")
finally:
    if mock is not None:
        mock.terminate()
        mock.wait(timeout=5)
