"""Command-line launcher for the sparkproxy server."""

import argparse

import uvicorn

from sparkproxy.config_loader import load_config
from sparkproxy.main import create_app, resolve_server_address


def main() -> None:
    parser = argparse.ArgumentParser(description="OpenAI-compatible proxy for the Genspark ask API")
    parser.add_argument("--config", help="Path to the YAML config (defaults to SPARKPROXY_CONFIG)")
    parser.add_argument("--env-file", help="Path to the .env file used for ${VAR} substitution")
    args = parser.parse_args()

    config = load_config(args.config, env_path=args.env_file)
    host, port = resolve_server_address(config)
    uvicorn.run(create_app(config), host=host, port=port)


if __name__ == "__main__":
    main()
