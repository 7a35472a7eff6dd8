import io
import json
import logging
import lzma
import struct
import zipfile
import zlib
from typing import Dict, Iterator, List, Optional, Tuple, Union

from slicerlens.schemas.analysis import ConfigFile, ExtractedFile
from slicerlens.schemas.results import ExtractionErrorKind, ExtractionFailure

logger = logging.getLogger(__name__)

# Parts every conforming 3MF package carries. Some producers omit optional
# ones, so absence is only reported, never enforced.
STANDARD_3MF_PARTS = ("3D/3dmodel.model", "_rels/.rels", "[Content_Types].xml")

# Anything zipfile and its codecs (deflate, bzip2, lzma) can throw on a hostile or truncated buffer
_ZIP_ERRORS = (
    zipfile.BadZipFile,
    zipfile.LargeZipFile,
    zlib.error,
    lzma.LZMAError,
    struct.error,         # truncated LZMA member properties
    NotImplementedError,  # unsupported compression method
    RuntimeError,         # encrypted member
    EOFError,
    OSError,
    ValueError,
)


class RawArchive:
    """
    In-memory 3MF/ZIP contents: archive-relative path -> bytes.

    Keys keep the case they were stored with. Lookups are case-insensitive
    linear scans; archives hold a handful to a few hundred entries.
    """

    def __init__(self, entries: Optional[Dict[str, bytes]] = None):
        self._entries: Dict[str, bytes] = dict(entries or {})

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, path: object) -> bool:
        return path in self._entries

    def __getitem__(self, path: str) -> bytes:
        return self._entries[path]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def items(self) -> Iterator[Tuple[str, bytes]]:
        return iter(self._entries.items())

    @property
    def paths(self) -> List[str]:
        return list(self._entries)

    def find(self, path: str) -> Optional[Tuple[str, bytes]]:
        """Returns (stored_path, content) of the first case-insensitive match."""
        wanted = _fold(path)
        for stored_path, content in self._entries.items():
            if _fold(stored_path) == wanted:
                return stored_path, content
        return None

    def missing_3mf_parts(self) -> List[str]:
        """Standard 3MF parts with no matching entry (suffix match, any case)."""
        folded = [_fold(p) for p in self._entries]
        missing = []
        for part in STANDARD_3MF_PARTS:
            target = _fold(part)
            if not any(p == target or p.endswith("/" + target) for p in folded):
                missing.append(part)
        return missing


def _fold(path: str) -> str:
    return path.replace("\\", "/").casefold()


def extract_archive(data: bytes) -> Union[RawArchive, ExtractionFailure]:
    """
    Opens a ZIP buffer and decompresses every non-directory entry into memory.

    Never raises for bad input: a buffer that is not a readable ZIP container
    yields NOT_A_ZIP, a container with zero entries yields EMPTY_ARCHIVE.
    Duplicate stored names keep the first entry in central-directory order.
    """
    try:
        with zipfile.ZipFile(io.BytesIO(data), "r") as zf:
            infos = zf.infolist()
            if not infos:
                return ExtractionFailure(
                    kind=ExtractionErrorKind.EMPTY_ARCHIVE,
                    message="The file is not a valid 3MF file (empty ZIP archive)",
                )

            entries: Dict[str, bytes] = {}
            for info in infos:
                if info.is_dir():
                    continue
                if info.filename in entries:
                    logger.warning(f"Duplicate archive entry {info.filename}, keeping the first one")
                    continue
                with zf.open(info) as member:
                    entries[info.filename] = member.read()
    except _ZIP_ERRORS as e:
        logger.error(f"Error extracting ZIP: {e}")
        return ExtractionFailure(
            kind=ExtractionErrorKind.NOT_A_ZIP,
            message="The file is not a valid 3MF file (corrupt ZIP archive)",
        )

    archive = RawArchive(entries)
    logger.info(f"Extracted {len(archive)} files from the 3MF archive")
    logger.debug(f"Extracted files: {', '.join(archive.paths)}")
    return archive


# --- Archive inventory ---

def classify_entry(name: str) -> str:
    lower = name.lower()
    if lower.endswith((".xml", ".model", ".rels")):
        return "text/xml"
    if lower.endswith((".json", ".config")):
        return "application/json"
    if lower.endswith(".txt"):
        return "text/plain"
    return "binary"


def summarize_archive(archive: RawArchive) -> List[ExtractedFile]:
    """Name, size and type of every entry; text entries also carry their content."""
    files: List[ExtractedFile] = []
    for name, content in archive.items():
        file_type = classify_entry(name)
        text: Optional[str] = None
        if file_type.startswith("text/") or file_type == "application/json":
            try:
                text = content.decode("utf-8")
            except UnicodeDecodeError as e:
                logger.warning(f"Error decoding {name}: {e}")
        files.append(ExtractedFile(name=name, size=len(content), type=file_type, content=text))

    files.sort(key=lambda f: f.name)
    return files


def collect_config_files(archive: RawArchive) -> List[ConfigFile]:
    """
    Parses every .config/.json entry inside a Metadata folder.
    Entries that are not JSON (Bambu's XML slice_info.config, for one) are kept
    as raw text flagged with parseError.
    """
    configs: List[ConfigFile] = []
    for name, content in archive.items():
        folded = _fold(name)
        in_metadata = folded.startswith("metadata/") or "/metadata/" in folded
        if not in_metadata or not folded.endswith((".config", ".json")):
            continue

        text = content.decode("utf-8", errors="replace")
        try:
            parsed = json.loads(text)
        except json.JSONDecodeError:
            logger.debug(f"Config file {name} is not JSON, keeping raw text")
            parsed = {"rawContent": text, "parseError": True}

        configs.append(ConfigFile(name=name.split("/")[-1], path=name, content=parsed))

    configs.sort(key=lambda c: c.name)
    return configs
