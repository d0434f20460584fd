"""Computing which assets an album is missing."""

from album_sync.models import Album, Asset


def missing(source: Album, target: Album) -> list[Asset]:
    """Return the assets of ``source`` whose identity is absent from ``target``.

    The result keeps the source's order so repeated runs upload in the same
    order. Neither album is modified.
    """
    return [asset for identity, asset in source.assets.items() if identity not in target]
