# scripts/setup/create_indexes.py
"""
Create the Qdrant payload indexes the structured filters rely on.
Run once after the collection is loaded, or after adding a filter field.
Usage: python scripts/setup/create_indexes.py
"""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", ".."))

from qdrant_client import QdrantClient, models

from portaria.config import settings
from portaria.services.filter_compiler import ENTRY_DATE_FIELD, PLATE_FIELD, RELATED_NAMES_FIELD

KEYWORD = models.PayloadSchemaType.KEYWORD
TEXT = models.PayloadSchemaType.TEXT
BOOL = models.PayloadSchemaType.BOOL
DATETIME = models.PayloadSchemaType.DATETIME

REQUIRED_INDEXES = [
    ("ainda_dentro", BOOL),
    ("tem_veiculo", BOOL),
    ("pessoa_documento", KEYWORD),
    ("pessoa_nome", TEXT),
    (RELATED_NAMES_FIELD, TEXT),
    ("morador_nome", TEXT),
    ("residencia_numero", KEYWORD),
    ("residencia_rua", KEYWORD),
    (PLATE_FIELD, KEYWORD),
    ("periodo_dia", KEYWORD),
    ("dia_semana", KEYWORD),
    (ENTRY_DATE_FIELD, DATETIME),
]

# Older loads indexed the entry date as keyword; range filters need datetime
ALWAYS_RECREATE = {ENTRY_DATE_FIELD}


def main():
    print("🔍 Portaria Qdrant index setup")
    print("=" * 40)
    print(f"📡 Qdrant: {settings.QDRANT_URL}")
    print(f"📊 Collection: {settings.QDRANT_COLLECTION_NAME}")

    client = QdrantClient(url=settings.QDRANT_URL, api_key=settings.QDRANT_API_KEY)
    try:
        info = client.get_collection(settings.QDRANT_COLLECTION_NAME)
    except Exception as e:
        print(f"❌ Cannot read collection: {e}")
        sys.exit(1)

    existing = info.payload_schema or {}
    print(f"✅ Collection OK — {len(existing)} existing index(es)")

    failures = 0
    print("\n📋 Checking indexes...")
    for field, schema in REQUIRED_INDEXES:
        try:
            if field in ALWAYS_RECREATE:
                if field in existing:
                    client.delete_payload_index(settings.QDRANT_COLLECTION_NAME, field)
                client.create_payload_index(settings.QDRANT_COLLECTION_NAME, field, field_schema=schema)
                print(f"   ♻️  {field} recreated as {schema.value}")
            elif field not in existing:
                client.create_payload_index(settings.QDRANT_COLLECTION_NAME, field, field_schema=schema)
                print(f"   ✓ {field} created as {schema.value}")
            else:
                print(f"   · {field} already indexed")
        except Exception as e:
            failures += 1
            print(f"   ❌ {field}: {e}")

    client.close()
    if failures:
        print(f"\n⚠️  {failures} index(es) failed — structured filters on those fields may error")
        sys.exit(1)

    print("\n🎉 Indexes ready! You can now start the backend:")
    print(f"   uvicorn portaria.main:app --host 0.0.0.0 --port {settings.BACKEND_PORT} --reload")


if __name__ == "__main__":
    main()
