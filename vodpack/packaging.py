"""
Bento4 integration: MP4 fragmentation and DASH/HLS manifest packaging.
"""

import logging
import struct
from pathlib import Path
from typing import Iterator, List, Sequence, Tuple

from .config import PackagingConfig
from .errors import FragmentationError, ManifestError
from .transcoding.constants import FRAGMENT_DURATION_MS
from .transcoding.error_classifier import get_error_classifier
from .transcoding.runner import ProcessRunner

logger = logging.getLogger(__name__)


# =============================================================================
# ISO-BMFF INSPECTION
# =============================================================================

def iter_top_level_boxes(path: Path) -> Iterator[Tuple[str, int]]:
    """Yield (box type, box size) for each top-level box of an MP4 file."""
    with open(path, "rb") as f:
        f.seek(0, 2)
        file_size = f.tell()
        offset = 0
        while offset + 8 <= file_size:
            f.seek(offset)
            size, box_type = struct.unpack(">I4s", f.read(8))
            if size == 1:
                (size,) = struct.unpack(">Q", f.read(8))
            elif size == 0:
                size = file_size - offset
            if size < 8:
                raise ValueError(f"Corrupt box at offset {offset} in {path}")
            yield box_type.decode("latin-1"), size
            offset += size


def count_fragments(path: Path) -> int:
    """Number of movie fragments (top-level moof boxes) in an MP4 file."""
    return sum(1 for box_type, _ in iter_top_level_boxes(path) if box_type == "moof")


# =============================================================================
# FRAGMENTER
# =============================================================================

class Fragmenter:
    """Rewrites a finished MP4 into a fragmented MP4 with mp4fragment."""

    def __init__(
        self,
        mp4fragment_path: str,
        runner: ProcessRunner,
        fragment_duration_ms: int = FRAGMENT_DURATION_MS
    ):
        self.mp4fragment_path = mp4fragment_path
        self.runner = runner
        self.fragment_duration_ms = fragment_duration_ms

    def build_command(self, source: Path, destination: Path) -> List[str]:
        return [
            self.mp4fragment_path,
            "--fragment-duration", str(self.fragment_duration_ms),
            str(source),
            str(destination),
        ]

    async def fragment(self, source: Path, destination: Path) -> Path:
        """
        Fragment ``source`` into ``destination``.

        Raises:
            FragmentationError: mp4fragment failed; any partial destination is removed
        """
        logger.info(f"[Fragment] {source.name} -> {destination.name}")
        result = await self.runner.run(
            self.build_command(source, destination),
            stage="fragment",
            label=destination.name,
        )
        if not result.ok:
            if destination.exists():
                logger.debug(f"[Fragment] Removing partial output {destination}")
                try:
                    destination.unlink()
                except OSError as e:
                    logger.warning(f"[Fragment] Could not remove partial output {destination}: {e}")
            detail = get_error_classifier().summarize(result.return_code, result.error_output)
            raise FragmentationError(
                f"Fragmenting {source} to {destination} "
                f"({self.fragment_duration_ms} ms fragments) failed",
                detail,
            )
        return destination


# =============================================================================
# MANIFEST BUILDER
# =============================================================================

def designate_primary(assets: Sequence[Path]) -> Tuple[Path, List[Path]]:
    """
    Split the ordered asset list into (primary, rest).

    mp4dash is invoked with the last asset as its primary input and every
    other asset, in order, ahead of it. A single asset is primary with an
    empty rest list.
    """
    if not assets:
        raise ValueError("At least one asset is required")
    assets = list(assets)
    return assets[-1], assets[:-1]


class ManifestBuilder:
    """Packages all fragmented assets into an on-demand DASH manifest and HLS playlist."""

    def __init__(self, mp4dash_path: str, runner: ProcessRunner, config: PackagingConfig):
        self.mp4dash_path = mp4dash_path
        self.runner = runner
        self.config = config

    def manifest_directory(self, job_dir: Path) -> Path:
        return job_dir / self.config.output_subdirectory

    def build_command(self, primary: Path, rest: Sequence[Path], output_dir: Path) -> List[str]:
        cmd = [
            self.mp4dash_path,
            "--verbose",
            "--profiles=on-demand",
            "--mpd-name", self.config.manifest_name,
        ]
        if self.config.enable_hls:
            cmd.append("--hls")
        cmd.extend(["-f", "-o", str(output_dir)])
        cmd.extend(str(asset) for asset in rest)
        cmd.append(str(primary))
        return cmd

    async def build(self, assets: Sequence[Path], job_dir: Path) -> Path:
        """
        Package ``assets`` and return the path of the DASH manifest.

        Raises:
            ManifestError: no assets, mp4dash failed, or no manifest was written
        """
        if not assets:
            raise ManifestError("No fragmented assets to package", assets)

        primary, rest = designate_primary(assets)
        output_dir = self.manifest_directory(job_dir)
        manifest_path = output_dir / self.config.manifest_name

        logger.info(f"[Manifest] Packaging {len(assets)} asset(s), primary {primary.name}")
        result = await self.runner.run(
            self.build_command(primary, rest, output_dir),
            stage="manifest",
            label=self.config.manifest_name,
        )
        if not result.ok:
            detail = get_error_classifier().summarize(result.return_code, result.error_output)
            raise ManifestError(f"mp4dash failed to package {len(assets)} asset(s)", assets, detail)

        if not manifest_path.exists():
            raise ManifestError(f"mp4dash reported success but {manifest_path} is missing", assets)

        logger.info(f"[Manifest] Wrote {manifest_path}")
        return manifest_path
