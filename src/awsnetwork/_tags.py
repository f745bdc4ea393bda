from typing import Dict, Tuple

PROJECT_TAG = ("Project", "awsnetwork")


def unpack_tags(tags: str | None) -> Tuple[Tuple[str, str], ...]:
    tags_unpacked: list[Tuple[str, str]] = []
    if tags:
        try:
            for tag in tags.split(";"):
                if not tag.strip():
                    continue
                key, value = tag.split("=")
                tags_unpacked.append((key.strip(), value.strip()))
        except ValueError:
            raise ValueError(
                "Tags must be in the format 'key1=value1;key2=value2', "
                f"but instead got {tags}"
            )
    return tuple(tags_unpacked)


def stack_tags(extra_tags: Tuple[Tuple[str, str], ...]) -> Dict[str, str]:
    """Tags applied to every stack; extra tags may override the project tag."""
    tags = dict([PROJECT_TAG])
    tags.update(extra_tags)
    return tags
