"""Touchless CLI entry point."""

import argparse
import logging
import sys

from dotenv import load_dotenv
from pydantic import ValidationError

load_dotenv()

from touchless import __version__
from touchless.agents.fixer import create_remediation_engine
from touchless.config import Settings, get_settings
from touchless.deployment import STAGE_NAMES, DeploymentParams, build_exchange_stages
from touchless.executor import CommandRunner
from touchless.observability import configure_logging, initialize_logfire
from touchless.pipeline import Pipeline, PipelineOutcome
from touchless.progress import ConsoleProgressReporter
from touchless.storage import DeployLog, FileResumeStore

logger = logging.getLogger(__name__)

CONFIG_TEMPLATE = """# Touchless Configuration
# Deployment parameters and fixer behaviour.
# API keys and secrets belong in .env (OPENAI_API_KEY, LOGFIRE_TOKEN), not here.

deployment:
  domain_name: corp.contoso.com
  netbios_name: CONTOSO
  exchange_setup_path: 'C:\\Setup-Software\\Exchange'
  organization_name: Contoso
  timezone: Eastern Standard Time
  user_count: 10

remediation:
  model: gpt-4o-mini
  web_search: true
  max_output_tokens: 512
  shell: auto
  reboot_on_success: true
  reboot_delay_seconds: 5
"""


def _print_validation_errors(e: ValidationError) -> None:
    for error in e.errors():
        print(f"  • {'.'.join(str(x) for x in error['loc'])}: {error['msg']}")
    print()


def _init_logfire(settings: Settings) -> None:
    """Initialize Logfire if available, without failing commands."""
    try:
        initialize_logfire(settings)
    except Exception as e:
        logger.warning(f"Failed to initialize Logfire: {e}")


def cmd_init(args: argparse.Namespace) -> int:
    """Initialize data directory structure and configuration file."""
    try:
        settings = get_settings()
        data_dir = settings.data_dir

        settings.log_dir.mkdir(parents=True, exist_ok=True)
        print(f"Created data directory: {data_dir}")

        config_path = data_dir / "config.yaml"
        if not config_path.exists():
            config_path.write_text(CONFIG_TEMPLATE, encoding="utf-8")
            print(f"Created config template: {config_path}")
        else:
            print(f"Config file already exists: {config_path}")

        print("\nNext steps:")
        print("1. Put OPENAI_API_KEY (and optionally LOGFIRE_TOKEN) in .env")
        print("2. Review data/config.yaml and set the DSRM password via DEPLOYMENT__DSRM_PASSWORD")
        print("3. Run 'touchless config' to verify configuration")
        print("4. Run 'touchless run' from an elevated prompt\n")
        return 0

    except Exception as e:
        logger.error(f"Failed to initialize: {e}")
        print(f"\n❌ Initialization failed: {e}\n")
        return 1


def cmd_config(args: argparse.Namespace) -> int:
    """Display merged configuration."""
    try:
        settings = get_settings()
        d = settings.deployment
        r = settings.remediation

        print("\n=== Touchless Configuration ===\n")
        print(f"Data Directory: {settings.data_dir}")
        print(f"Deployment Log: {settings.log_file}")
        print(f"Resume File: {settings.state_file}\n")

        print("Deployment:")
        print(f"  Domain: {d.domain_name or '(not set)'}")
        print(f"  NetBIOS: {d.netbios_name or '(not set)'}")
        print(f"  DSRM Password: {'✓ Set' if d.dsrm_password else '✗ Not set'}")
        print(f"  Exchange Setup: {d.exchange_setup_path}")
        print(f"  Organization: {d.organization_name or '(not set)'}")
        print(f"  Timezone: {d.timezone}")
        print(f"  Users: {d.user_count} -> {d.users_dir}\n")

        print("Remediation:")
        print(f"  Model: {r.model.value}")
        print(f"  Web Search: {r.web_search}")
        print(f"  Shell: {r.shell}")
        print(f"  Reboot On Success: {r.reboot_on_success} ({r.reboot_delay_seconds}s)\n")

        print("API Keys:")
        print(f"  OpenAI: {'✓ Set' if settings.openai_api_key else '✗ Not set'}")
        print(f"  Logfire: {'✓ Set' if settings.logfire_token else '✗ Not set'}\n")
        return 0

    except ValidationError as e:
        print("\n❌ Configuration Error:\n")
        _print_validation_errors(e)
        return 1
    except Exception as e:
        logger.error(f"Failed to load config: {e}")
        print(f"\n❌ Failed to load configuration: {e}\n")
        return 1


def cmd_status(args: argparse.Namespace) -> int:
    """Display the resume point and stage list."""
    try:
        settings = get_settings()
        state_path = settings.state_file

        if state_path.exists():
            current = FileResumeStore(state_path).get_stage()
        else:
            current = 0

        total = len(STAGE_NAMES)
        print("\n=== Touchless Deployment Status ===\n")
        if not state_path.exists():
            print("Not started.\n")
        elif current >= total:
            print(f"Complete ({total}/{total} stages).\n")
        else:
            print(f"Next stage: {STAGE_NAMES[current]} ({current + 1}/{total})\n")

        for i, name in enumerate(STAGE_NAMES):
            mark = "✓" if i < current else ("→" if i == current else " ")
            print(f"  {mark} {i}. {name}")
        print()
        return 0

    except Exception as e:
        logger.error(f"Failed to read status: {e}")
        print(f"\n❌ Failed to read status: {e}\n")
        return 1


def cmd_run(args: argparse.Namespace) -> int:
    """Run (or resume) the deployment pipeline."""
    try:
        settings = get_settings()
        log_path = configure_logging(settings.log_dir, debug=args.debug)
    except ValidationError as e:
        print("\n❌ Configuration Error:\n")
        _print_validation_errors(e)
        return -1
    except Exception as e:
        logger.error(f"Failed to start deployment: {e}")
        print(f"\n❌ Deployment failed: {e}\n")
        return -1

    _init_logfire(settings)

    try:
        params = DeploymentParams.from_config(
            settings.deployment,
            domain_name=args.domain,
            netbios_name=args.netbios,
            dsrm_password=args.dsrm_password,
            exchange_setup_path=args.exchange_setup_path,
            organization_name=args.organization,
        )
    except ValidationError as e:
        print("\n❌ Invalid deployment parameters:\n")
        _print_validation_errors(e)
        return -1

    print(f"\n=== Touchless {__version__} ===\n")
    print(f"Domain: {params.domain_name} ({params.netbios_name})")
    print(f"Organization: {params.organization_name}")
    print(f"Logs: {settings.log_dir}\n")

    log = DeployLog(settings.log_file)
    progress = ConsoleProgressReporter()

    try:
        runner = CommandRunner(log, progress)
        stages = build_exchange_stages(
            params,
            runner,
            progress,
            timezone=settings.deployment.timezone,
            users_dir=settings.deployment.users_dir,
            user_count=settings.deployment.user_count,
        )
        pipeline = Pipeline(
            stages=stages,
            store=FileResumeStore(settings.state_file),
            remediator=create_remediation_engine(settings, log),
            progress=progress,
            log=log,
        )
        result = pipeline.run()
    except Exception as e:
        progress.finish()
        logger.error(f"Deployment crashed: {e}", exc_info=True)
        print(f"❌ Deployment failed. See {log_path}")
        return -1

    progress.finish()
    if result.outcome == PipelineOutcome.COMPLETED:
        print("✅ Deployment succeeded!")
    elif result.outcome == PipelineOutcome.REMEDIATED:
        print(f"❌ Deployment failed at {result.stage_name}; a fix was applied and the host will restart.")
    else:
        print(f"❌ Deployment failed. See {settings.log_file}")
    return result.exit_code


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Touchless: unattended, self-healing Exchange Server deployment",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"Touchless {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    parser_init = subparsers.add_parser(
        "init",
        help="Initialize data directory and configuration file",
    )
    parser_init.set_defaults(func=cmd_init)

    parser_config = subparsers.add_parser(
        "config",
        help="Display merged configuration",
    )
    parser_config.set_defaults(func=cmd_config)

    parser_status = subparsers.add_parser(
        "status",
        help="Display the resume point and stage list",
    )
    parser_status.set_defaults(func=cmd_status)

    parser_run = subparsers.add_parser(
        "run",
        help="Run or resume the deployment",
    )
    parser_run.add_argument("--domain", help="FQDN of the new AD forest")
    parser_run.add_argument("--netbios", help="NetBIOS domain name")
    parser_run.add_argument("--dsrm-password", help="DSRM (Safe Mode) password")
    parser_run.add_argument("--exchange-setup-path", help="Directory containing Setup.exe")
    parser_run.add_argument("--organization", help="Exchange organization name")
    parser_run.add_argument(
        "--debug",
        action="store_true",
        help="Show debug logging on the console",
    )
    parser_run.set_defaults(func=cmd_run)

    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
