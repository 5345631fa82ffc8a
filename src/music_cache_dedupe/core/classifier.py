"""Identity classification for cached music files."""

import logging

from .models import (
    CatalogIdKey,
    ClassifiedFile,
    MediaFile,
    NameDurationKey,
    TitleAlbumKey,
)

logger = logging.getLogger(__name__)


def normalize(text: str) -> str:
    """Case-fold and trim a string for comparison."""
    return text.strip().casefold()


class IdentityClassifier:
    """Derives the identity key and reliability of a single file."""

    def classify(self, media: MediaFile) -> ClassifiedFile:
        """
        Classify one file, the first applicable rule wins.

        Args:
            media: File metadata captured by the extractor

        Returns:
            ClassifiedFile carrying the key and whether it is reliable

        Example:
            >>> classifier = IdentityClassifier()
            >>> result = classifier.classify(MediaFile(path=Path("Foo (1).mp3"), duration=200.0))
            >>> result.key
            NameDurationKey(kind='name_duration', derived_title='foo')
        """
        if media.catalog_id is not None:
            key = CatalogIdKey(catalog_id=media.catalog_id)
            reliable = True
        elif media.title is not None and media.album is not None:
            key = TitleAlbumKey(title=normalize(media.title), album=normalize(media.album))
            reliable = True
        else:
            key = NameDurationKey(derived_title=normalize(media.derived_title))
            reliable = False

        logger.debug(f"Classified {media.filename} as {key} (reliable={reliable})")
        return ClassifiedFile(media=media, key=key, reliable=reliable)

    def classify_all(self, files: list[MediaFile]) -> list[ClassifiedFile]:
        """Classify every file in a batch."""
        classified = [self.classify(media) for media in files]
        unreliable = sum(1 for item in classified if not item.reliable)
        logger.info(
            f"Classified {len(classified)} files ({unreliable} without reliable tags)"
        )
        return classified
