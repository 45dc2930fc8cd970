#!/usr/bin/env python
import os
import sys
from dotenv import load_dotenv

PROVIDER_KEYS = ("ANTHROPIC_API_KEY", "OPENAI_API_KEY", "XAI_API_KEY", "GEMINI_API_KEY", "DEEPSEEK_API_KEY")


def main() -> None:
    # Load .env early so runtime checks see env vars
    load_dotenv()
    # Refuse to start the dev server without at least one chat provider
    if any(cmd in sys.argv for cmd in ["runserver", "runserver_plus"]):
        if not any(os.environ.get(key) for key in PROVIDER_KEYS):
            sys.stderr.write(
                "Error: no AI provider key configured. Set one of "
                f"{', '.join(PROVIDER_KEYS)} in .env.\n"
            )
            sys.exit(1)

    os.environ.setdefault("DJANGO_SETTINGS_MODULE", "hobnob.settings")
    from django.core.management import execute_from_command_line
    execute_from_command_line(sys.argv)


if __name__ == "__main__":
    main()
