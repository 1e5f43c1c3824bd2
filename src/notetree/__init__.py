"""Notes on disk as a model tree: files, directories and a watch service.

Layout of the model tree:

    Workspace                  pseudo-root, owns the WatchService
        NoteDirectory          one per opened directory (recursive)
            NoteFile           one per note file (.md, .markdown, .txt)
        NoteFile               files opened on their own ("root" files)

File content is only held while an edit is pending (NoteFile.buffer);
everything else is read from disk on demand. Changes made outside the
process arrive through WatchService and are routed to the model in scope.
"""

from notetree.config import NoteTreeConfig, init_config, load_config
from notetree.directory import NoteDirectory
from notetree.errors import ConfigError, InvalidNameError, InvalidQueryError, NoteTreeError
from notetree.file import NoteFile
from notetree.models import ByHash, ByPath, FileSnapshot, SearchTerm
from notetree.search import parse_query
from notetree.watcher import WatchService
from notetree.workspace import Workspace

__all__ = [
    "ByHash",
    "ByPath",
    "ConfigError",
    "FileSnapshot",
    "InvalidNameError",
    "InvalidQueryError",
    "NoteDirectory",
    "NoteFile",
    "NoteTreeConfig",
    "NoteTreeError",
    "SearchTerm",
    "WatchService",
    "Workspace",
    "init_config",
    "load_config",
    "parse_query",
]
