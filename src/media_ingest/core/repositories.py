"""DynamoDB-backed album lookup and image metadata store."""

from typing import Any, Dict, Optional

from .models import Album, ImageRecord


def pk_tenant(tenant_id: str) -> str:
    return f"TENANT#{tenant_id}"


def sk_album(album_id: str) -> str:
    return f"ALBUM#{album_id}"


def sk_image(image_id: str) -> str:
    return f"IMAGE#{image_id}"


def _strip_keys(item: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in item.items() if k not in ("PK", "SK", "GSI1PK", "GSI1SK")}


class DynamoAlbumLookup:
    """Reads album items from the single-table layout."""

    def __init__(self, table: Any):
        self._table = table

    def get_album(self, tenant_id: str, album_id: str) -> Optional[Album]:
        response = self._table.get_item(
            Key={"PK": pk_tenant(tenant_id), "SK": sk_album(album_id)}
        )
        item = response.get("Item")
        if not item:
            return None
        data = _strip_keys(item)
        data.setdefault("id", album_id)
        data.setdefault("tenantId", tenant_id)
        return Album.model_validate(data)


class DynamoImageMetadataStore:
    """
    Image records keyed by (tenant, image).

    ``put`` is an unconditional overwrite: reprocessing the same image
    replaces the previous record, last writer wins.
    """

    def __init__(self, table: Any):
        self._table = table

    def get(self, tenant_id: str, image_id: str) -> Optional[ImageRecord]:
        response = self._table.get_item(
            Key={"PK": pk_tenant(tenant_id), "SK": sk_image(image_id)}
        )
        item = response.get("Item")
        if not item:
            return None
        return ImageRecord.model_validate(_strip_keys(item))

    def put(self, record: ImageRecord) -> None:
        item = record.model_dump(mode="json", by_alias=True, exclude_none=True)
        if not record.variants:
            item.pop("variants", None)
        item.update(
            {
                "PK": pk_tenant(record.tenant_id),
                "SK": sk_image(record.id),
                "GSI1PK": sk_album(record.album_id),
                "GSI1SK": sk_image(record.id),
            }
        )
        self._table.put_item(Item=item)
