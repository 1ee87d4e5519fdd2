"""Interface en ligne de commande Dedoublon."""

from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path

import pandas as pd

from dedoublon import __version__
from dedoublon.config import ConfigError, ConfigFileError, DedupeConfig
from dedoublon.jobs import DelegatedDedupeJob, LocalDedupeJob, SplinkClient
from dedoublon.logging_config import configure
from dedoublon.progress import COMPLETED, DedupeProgress
from dedoublon.report import build_report_df, print_report_console

API_KEY_ENV = "DEDOUBLON_API_KEY"


def _print_progress(progress: DedupeProgress) -> None:
    print(f"[{progress.percentage:5.1f}%] {progress.status:<10} {progress.message}")


def _load_config(config_path: str) -> DedupeConfig | None:
    try:
        return DedupeConfig.load(config_path)
    except (ConfigFileError, ConfigError) as e:
        print(f"Erreur: {e}")
        return None


def _validate_columns(config: DedupeConfig, df: pd.DataFrame) -> None:
    """Avertit si des colonnes du mapping sont absentes des données."""
    missing = [c.source_col for c in config.columns if c.source_col not in df.columns]
    if missing:
        print(f"Avertissement: colonnes absentes (traitées comme vides): {', '.join(missing)}")


def cmd_check_config(config_path: str) -> int:
    """Valide un fichier de configuration."""
    config = _load_config(config_path)
    if config is None:
        return 1
    print(f"Configuration valide: {len(config.match_columns)} colonne(s) comparée(s), seuil={config.threshold}")
    return 0


def cmd_run(
    config_path: str,
    input_path: str,
    output_dir: str | None,
    *,
    delegated: bool = False,
    service_url: str | None = None,
) -> int:
    """Exécute le dédoublonnage d'un CSV."""
    config = _load_config(config_path)
    if config is None:
        return 1
    if service_url:
        config.splink.base_url = service_url

    try:
        df = pd.read_csv(input_path, dtype=str, keep_default_na=False)
    except (OSError, pd.errors.ParserError, pd.errors.EmptyDataError) as e:
        print(f"Erreur: impossible de lire {input_path}: {e}")
        return 1
    _validate_columns(config, df)

    if delegated or config.mode == "delegated":
        with SplinkClient(config.splink, api_key=os.environ.get(API_KEY_ENV)) as client:
            job = DelegatedDedupeJob(df, config, client, listener=_print_progress)
            final = job.run()
    else:
        job = LocalDedupeJob(df, config, listener=_print_progress)
        final = job.run()

    if final.status != COMPLETED or job.result is None:
        print(f"Erreur: job {final.status}: {final.error or final.message}")
        return 1

    result = job.result
    print_report_console(result)

    if output_dir:
        out = Path(output_dir)
        out.mkdir(parents=True, exist_ok=True)
        result.processed_data.to_csv(out / "deduplicated.csv", index=False)
        result.flagged_data.to_csv(out / "flagged.csv", index=False)
        build_report_df(result, config).to_csv(out / "report.csv", index=False)
        print(f"Fichiers de sortie: {out}")

    return 0


def main() -> int:
    parser = argparse.ArgumentParser(
        prog="dedoublon",
        description="Dédoublonnage de tableurs (blocking + fuzzy matching + clusters)",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--log-level", default="WARNING", help="Niveau de log (DEBUG, INFO, WARNING...)")

    subparsers = parser.add_subparsers(dest="command", help="Commandes")

    # check-config
    p_check = subparsers.add_parser("check-config", help="Valider un fichier de configuration")
    p_check.add_argument("config", help="Fichier config JSON")

    # run
    p_run = subparsers.add_parser("run", help="Exécuter le dédoublonnage")
    p_run.add_argument("--config", "-c", required=True, help="Fichier config JSON")
    p_run.add_argument("--input", "-i", required=True, help="Fichier CSV à dédoublonner")
    p_run.add_argument("--output-dir", "-o", help="Dossier des fichiers de sortie")
    p_run.add_argument("--delegated", action="store_true", help="Confier le matching au service Splink")
    p_run.add_argument("--service-url", help="URL du service Splink")

    args = parser.parse_args()
    configure(args.log_level)

    if args.command == "check-config":
        return cmd_check_config(args.config)

    if args.command == "run":
        return cmd_run(
            args.config,
            args.input,
            args.output_dir,
            delegated=args.delegated,
            service_url=args.service_url,
        )

    parser.print_help()
    return 0


if __name__ == "__main__":
    sys.exit(main())
