#!/usr/bin/env python3
"""
Command-line interface for the Markdown slide generator.

Generates a Marp Markdown slide deck for a topic using an OpenAI compatible
chat completions API and writes it to a file or stdout.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

load_dotenv()


def mask_credential(credential: Optional[str]) -> str:
    """Show only the prefix and last four characters of an API key."""
    if not credential:
        return "<not set>"
    if len(credential) <= 8:
        return "*" * len(credential)
    return f"{credential[:3]}...{credential[-4:]}"


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="mdslides",
        description="Generate a Markdown slide deck for a topic with an LLM",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python slides_cli.py --topic "quarterly sales review" --template business
  python slides_cli.py --topic "Intro to graph databases" --output deck.md
  python slides_cli.py --list-templates
        """,
    )
    parser.add_argument("--topic", help="Topic of the presentation")
    parser.add_argument(
        "--template",
        default=None,
        help="Prompt template id (default: basic). See --list-templates",
    )
    parser.add_argument("--model", help="Model name (default from OPENAI_MODEL)")
    parser.add_argument("--temperature", type=float, help="Sampling temperature")
    parser.add_argument("--max-tokens", type=int, help="Completion token limit")
    parser.add_argument(
        "--output",
        "-o",
        help="Output Markdown file. Prints to stdout when omitted",
    )
    parser.add_argument(
        "--api-key",
        default=None,
        help="OpenAI API key. If not provided, uses OPENAI_API_KEY",
    )
    parser.add_argument(
        "--list-templates",
        action="store_true",
        help="List available prompt templates and exit",
    )
    parser.add_argument(
        "--validate-only",
        action="store_true",
        help="Only check the API key against the provider",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose output",
    )
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    args = parse_args(argv)

    from mdslides import (
        CancellationToken,
        ClientConfig,
        GenerationError,
        GenerationOptions,
        SlideClient,
        SlideGenerationRequest,
        TemplateNotFoundError,
        list_templates,
        user_message,
    )
    from mdslides.settings import get_settings

    settings = get_settings()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.list_templates:
        for template in list_templates():
            print(f"{template.id:<10} {template.name} (up to {template.max_slides} slides)")
            if template.description:
                print(f"{'':<10} {template.description}")
        return 0

    if not args.validate_only and not args.topic:
        print("error: --topic is required unless using --list-templates or --validate-only", file=sys.stderr)
        return 2

    config = ClientConfig.from_settings(settings, credential=args.api_key)
    client = SlideClient(config)

    if args.verbose:
        print("Configuration:")
        print(f"  - API key: {mask_credential(config.credential)}")
        for key, value in client.get_config().items():
            print(f"  - {key}: {value}")

    if args.validate_only:
        if client.validate_connection():
            print("✓ API key accepted by the provider")
            return 0
        print("❌ API key validation failed", file=sys.stderr)
        return 1

    request = SlideGenerationRequest(
        topic=args.topic,
        template_type=args.template,
        options=GenerationOptions(
            model=args.model,
            temperature=args.temperature,
            max_tokens=args.max_tokens,
        ),
    )

    token = CancellationToken()
    try:
        result = client.generate(request, cancel_token=token)
    except KeyboardInterrupt:
        token.cancel()
        print("\n⏹️  Generation cancelled by user", file=sys.stderr)
        return 130
    except TemplateNotFoundError as e:
        print(f"❌ {e}. Use --list-templates to see the available ids.", file=sys.stderr)
        return 2
    except GenerationError as e:
        print(f"❌ {user_message(e)}", file=sys.stderr)
        if args.verbose:
            print(f"   {e.kind.value}: {e}", file=sys.stderr)
        return 1

    if args.output:
        out_path = Path(args.output).expanduser().resolve()
        out_path.parent.mkdir(parents=True, exist_ok=True)
        out_path.write_text(result.markdown + "\n", encoding="utf-8")
        print(f"✅ {result.metadata.slide_count} slides written to {out_path}")
    else:
        print(result.markdown)

    if args.verbose:
        usage = result.metadata.token_usage
        print(f"Model: {result.metadata.model}", file=sys.stderr)
        print(f"Attempts: {result.metadata.attempts}", file=sys.stderr)
        if usage:
            print(
                f"Tokens: {usage.total_tokens} total "
                f"({usage.prompt_tokens} prompt + {usage.completion_tokens} completion)",
                file=sys.stderr,
            )
    return 0


if __name__ == "__main__":
    sys.exit(main())
