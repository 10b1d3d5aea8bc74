"""Manifest assembly and text rendering."""

from datetime import datetime

from llms_export.manifest.models import Manifest, ManifestLink, ManifestSection


TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


class ManifestBuilder:
    """Collects links into sections, in first-seen section order."""

    def __init__(self, title: str, description: str = "") -> None:
        self._title = title
        self._description = description
        self._sections: dict[str, list[ManifestLink]] = {}

    def add_link(self, section: str, title: str, url: str) -> None:
        """Append a link to a section, creating the section on first use."""
        self._sections.setdefault(section, []).append(
            ManifestLink(title=title, url=url)
        )

    def build(self, generated_at: datetime) -> Manifest:
        """Freeze the collected links into a manifest."""
        return Manifest(
            title=self._title,
            description=self._description,
            sections=[
                ManifestSection(name=name, links=links)
                for name, links in self._sections.items()
                if links
            ],
            generated_at=generated_at,
        )


def render_manifest(manifest: Manifest) -> str:
    """Render a manifest to its plain-text form.

    Layout::

        # {title}

        > {description}

        ## {section}

        - [{title}]({url})

        *Generated on {timestamp} with {N} items*

    Args:
        manifest: Manifest to render.

    Returns:
        Manifest text ending with a newline.
    """
    blocks = [f"# {manifest.title}"]

    if manifest.description:
        blocks.append(f"> {manifest.description}")

    for section in manifest.sections:
        lines = [f"- [{link.title}]({link.url})" for link in section.links]
        blocks.append(f"## {section.name}\n\n" + "\n".join(lines))

    timestamp = manifest.generated_at.strftime(TIMESTAMP_FORMAT)
    blocks.append(f"*Generated on {timestamp} with {manifest.item_count} items*")

    return "\n\n".join(blocks) + "\n"
