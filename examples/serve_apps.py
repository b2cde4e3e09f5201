import argparse
from pathlib import Path

from appstore_notify import load_settings
from appstore_notify.cli import serve


def main() -> None:
    parser = argparse.ArgumentParser(description="Serve App Store notifications for the apps listed in APPS")
    parser.add_argument("--env-file", default=str(Path.cwd() / ".env"), help="Optional .env file")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8787)
    args = parser.parse_args()

    env_file = Path(args.env_file)
    settings = load_settings(env_file=env_file if env_file.exists() else None)
    if not settings.apps:
        raise RuntimeError("missing APPS in environment or .env")
    serve(settings, host=args.host, port=args.port)


if __name__ == "__main__":
    main()
