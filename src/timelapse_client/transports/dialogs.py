"""File picker and save dialog adapters for the native transport."""

from __future__ import annotations

import abc
import logging
from collections.abc import Sequence
from pathlib import Path

from ..config.settings import IMAGE_EXTENSIONS

logger = logging.getLogger(__name__)

IMAGE_FILTER = ("Images", tuple(ext.lstrip(".") for ext in IMAGE_EXTENSIONS))
VIDEO_FILTER = ("Video", ("mp4",))


class DialogProvider(abc.ABC):
    """Asks the user for input images and a save location."""

    @abc.abstractmethod
    def pick_images(self) -> list[Path]:
        """Return the selected image paths, or an empty list if cancelled."""

    @abc.abstractmethod
    def choose_save_path(self, default_name: str) -> Path | None:
        """Return the chosen destination, or None if cancelled."""


class PresetDialogs(DialogProvider):
    """Headless dialogs answering with paths decided up front."""

    def __init__(
        self,
        images: Sequence[str | Path] = (),
        save_dir: str | Path | None = None,
    ) -> None:
        self.images = [Path(p) for p in images]
        self.save_dir = Path(save_dir) if save_dir else None

    def pick_images(self) -> list[Path]:
        return list(self.images)

    def choose_save_path(self, default_name: str) -> Path | None:
        if self.save_dir is None:
            return None
        return self.save_dir / default_name


class TkDialogs(DialogProvider):
    """Native OS dialogs through tkinter."""

    def _root(self):
        import tkinter

        root = tkinter.Tk()
        root.withdraw()
        return root

    def pick_images(self) -> list[Path]:
        from tkinter import filedialog

        name, extensions = IMAGE_FILTER
        root = self._root()
        try:
            selected = filedialog.askopenfilenames(
                parent=root,
                title="Select images",
                filetypes=[(name, " ".join(f"*.{ext}" for ext in extensions))],
            )
        finally:
            root.destroy()
        return [Path(p) for p in selected]

    def choose_save_path(self, default_name: str) -> Path | None:
        from tkinter import filedialog

        name, extensions = VIDEO_FILTER
        root = self._root()
        try:
            selected = filedialog.asksaveasfilename(
                parent=root,
                title="Save video",
                initialfile=default_name,
                defaultextension=f".{extensions[0]}",
                filetypes=[(name, " ".join(f"*.{ext}" for ext in extensions))],
            )
        finally:
            root.destroy()
        return Path(selected) if selected else None
