from pydantic import BaseModel, computed_field


class CatalogTrack(BaseModel):
    """A single uploaded track from the local catalog."""

    id: str
    title: str
    artist_name: str = ""
    duration: int = 0
    thumbnail: str = ""
    file: str

    @computed_field  # type: ignore[prop-decorator]
    @property
    def stream_url(self) -> str:
        """Path the API serves this track's audio from."""
        return f"/api/v1/serve/{self.file}"
