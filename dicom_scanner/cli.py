"""
Command-line entry point for *dicom-scanner*.

Scans one ZIP archive for DICOM objects and prints the scan report, or with
``--mrn`` only the distinct patient IDs found in the archive.
"""

import logging
from typing import Optional

import click

from dicom_scanner import config as config_module
from dicom_scanner.aggregate import unique_patient_ids
from dicom_scanner.archive import ArchiveOpenError
from dicom_scanner.extractor import deep_scan_dicom_candidates
from dicom_scanner.pipeline import load_archive, scan_file

logger = logging.getLogger(__name__)


def _configure_logging(cfg: dict) -> None:
    logging.basicConfig(
        level=getattr(logging, str(cfg["logging"]["level"]).upper(), logging.INFO),
        format=cfg["logging"]["format"],
    )


@click.command()
@click.option(
    "-f",
    "--file",
    "zip_path",
    required=True,
    type=click.Path(exists=True, dir_okay=False),
    help="Path to ZIP file containing DICOM files.",
)
@click.option("--mrn", is_flag=True, help="Output only the MRN (patient ID) of the study.")
@click.option("-v", "--verbose", is_flag=True, help="Narrate the fields read from each object.")
@click.option(
    "-c",
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False),
    help="Path to YAML configuration file.",
)
@click.option("-j", "--workers", type=click.IntRange(min=1), help="Prefilter worker threads.")
def main(
    zip_path: str,
    mrn: bool,
    verbose: bool,
    config_path: Optional[str],
    workers: Optional[int],
) -> None:
    """Scan a ZIP archive for DICOM files and summarise its studies."""
    cfg = config_module.load_config(config_path) if config_path else config_module.CONFIG
    _configure_logging(cfg)

    if workers is None:
        workers = cfg["scan"]["max_workers"]
    verbose = verbose or cfg["deep_scan"]["verbose"]

    try:
        if mrn:
            candidates = deep_scan_dicom_candidates(
                load_archive(zip_path),
                verbose=False,
                max_workers=cfg["deep_scan"]["max_workers"],
            )
            for patient_id in sorted(unique_patient_ids(candidates)):
                click.echo(patient_id)
            return

        report = scan_file(
            zip_path,
            verbose=verbose,
            max_workers=workers,
            deep_workers=cfg["deep_scan"]["max_workers"],
        )
    except (ArchiveOpenError, OSError) as exc:
        raise click.ClickException(str(exc)) from exc

    click.echo(report.summary())


if __name__ == "__main__":
    main()
