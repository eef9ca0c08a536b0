# SPDX-License-Identifier: MIT

from pathlib import Path, PurePosixPath

from notebridge.exceptions import DocumentExistsError, DocumentNotFoundError, NoteSyncError


def join_path(*parts: str) -> str:
    """Join vault-relative path segments, ignoring empty ones."""
    cleaned = [part.strip("/") for part in parts if part and part.strip("/")]
    return "/".join(cleaned)


def parent_folder(path: str) -> str:
    parent = str(PurePosixPath(path).parent)
    return "" if parent == "." else parent


def file_name(path: str) -> str:
    return PurePosixPath(path).name


def file_stem(path: str) -> str:
    return PurePosixPath(path).stem


class Vault:
    """
    Document store rooted at a directory on disk.

    All paths handed to and returned from a Vault are vault-relative and
    use forward slashes, regardless of platform.
    """

    def __init__(self, root: Path) -> None:
        self.root = root

    def __resolve(self, path: str) -> Path:
        relative = PurePosixPath(path)
        if relative.is_absolute() or ".." in relative.parts:
            raise NoteSyncError(f"Path escapes the vault: {path}")
        return self.root.joinpath(*relative.parts)

    def exists(self, path: str) -> bool:
        return self.__resolve(path).exists()

    def is_file(self, path: str) -> bool:
        return self.__resolve(path).is_file()

    def ensure_folder(self, folder: str) -> None:
        if folder:
            self.__resolve(folder).mkdir(parents=True, exist_ok=True)

    def read(self, path: str) -> str:
        target = self.__resolve(path)
        if not target.is_file():
            raise DocumentNotFoundError(path)
        try:
            return target.read_text(encoding="utf-8")
        except UnicodeDecodeError as e:
            raise NoteSyncError(f"Document {path} is not valid UTF-8: {e}") from e

    def read_binary(self, path: str) -> bytes:
        target = self.__resolve(path)
        if not target.is_file():
            raise DocumentNotFoundError(path)
        return target.read_bytes()

    def write(self, path: str, content: str) -> None:
        target = self.__resolve(path)
        self.ensure_folder(parent_folder(path))
        target.write_text(content, encoding="utf-8")

    def write_binary(self, path: str, data: bytes) -> None:
        target = self.__resolve(path)
        self.ensure_folder(parent_folder(path))
        target.write_bytes(data)

    def rename(self, old_path: str, new_path: str) -> None:
        source = self.__resolve(old_path)
        target = self.__resolve(new_path)
        if not source.exists():
            raise DocumentNotFoundError(old_path)
        if target.exists():
            raise DocumentExistsError(new_path)
        self.ensure_folder(parent_folder(new_path))
        source.rename(target)

    def delete(self, path: str) -> None:
        target = self.__resolve(path)
        if not target.is_file():
            raise DocumentNotFoundError(path)
        target.unlink()

    def list_children(self, folder: str) -> list[str]:
        """List the files directly inside `folder` (not recursive)."""
        directory = self.__resolve(folder) if folder else self.root
        if not directory.is_dir():
            return []
        return sorted(
            join_path(folder, child.name)
            for child in directory.iterdir()
            if child.is_file()
        )


def to_note_relative(note_path: str, path: str) -> str:
    """
    Express an attachment path relative to the folder of `note_path`.

    Paths outside that folder are kept vault-absolute with a leading slash.
    """
    folder = parent_folder(note_path)
    if not folder:
        return path
    if path.startswith(folder + "/"):
        return path[len(folder) + 1 :]
    return "/" + path


def from_note_relative(note_path: str, relative: str) -> str:
    if relative.startswith("/"):
        return relative[1:]
    return join_path(parent_folder(note_path), relative)
