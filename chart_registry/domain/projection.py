from chart_registry.domain.models import DecodedArchive, Metadata


def project(archive: DecodedArchive) -> Metadata:
    """Metadata summary of a decoded archive, detached from the archive itself."""
    return archive.metadata.model_copy(deep=True)
