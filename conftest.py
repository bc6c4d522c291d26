"""Shared fixtures: hand-built chunks and a small congress knowledge base."""
import json
import os

import pytest

from palmbot.rag.models import ChunkMetadata, DocumentChunk


def build_chunk(chunk_id, title, content, source="FEDEPALMA - test.json",
                category="general", keywords=None):
    return DocumentChunk(
        id=chunk_id,
        content=content,
        title=title,
        source=source,
        metadata=ChunkMetadata(
            category=category,
            section=chunk_id,
            document_type=category,
            keywords=list(keywords or []),
        ),
    )


@pytest.fixture
def make_chunk():
    return build_chunk


@pytest.fixture
def sample_corpus():
    return [
        build_chunk(
            "agenda-congreso.json_plenarias[0]_0",
            "Congreso Nacional de Palmicultores - plenarias[0]",
            "Martes 23 de septiembre, 2:00 p.m. - 3:00 p.m.: Martín Herrera presenta "
            "avances en palma de aceite alto oleico y sostenibilidad del sector.",
            source="FEDEPALMA - agenda-congreso.json",
            category="eventos",
            keywords=["palma", "aceite", "oleico", "sostenible"],
        ),
        build_chunk(
            "dao.json_productos_0",
            "Del Llano Alto Oleico - productos",
            "DAO produce aceite de palma alto oleico a partir del híbrido OxG, "
            "con un perfil de ácidos grasos similar al aceite de oliva.",
            source="FEDEPALMA - dao.json",
            category="empresas",
            keywords=["palma", "aceite", "oleico", "OxG", "híbrido", "dao"],
        ),
        build_chunk(
            "sirius.json_servicios_0",
            "Sirius Regenerative - servicios",
            "Sirius ofrece bioinsumos, biochar y control biológico de plagas para "
            "la regeneración de suelos en cultivos de palma.",
            source="FEDEPALMA - sirius.json",
            category="empresas",
            keywords=["palma", "sirius"],
        ),
    ]


@pytest.fixture
def data_dir(tmp_path):
    """A data directory with two well-formed documents and one malformed file."""
    guaicaramo = {
        "name": "Guaicaramo S.A.S.",
        "historia": {
            "resumen": "Guaicaramo fue fundada en 1977 en Barranca de Upía, Meta, "
                       "y se dedica al cultivo de palma de aceite en los Llanos Orientales.",
            "hitos": [
                "Certificación RSPO obtenida para toda la operación agrícola",
                "Primera planta de beneficio de la región",
            ],
        },
        "contacto": {"telefono": "Teléfono: 555 123 4567 ext 12"},
    }
    agenda = {
        "congress_info": {
            "name": "Congreso Nacional de Palmicultores 2025",
            "lugar": "Centro de Convenciones, Bogotá",
        },
        "plenarias": [
            {
                "hora": "2:00 p.m. - 3:00 p.m.",
                "tema": "Avances del cultivo de palma alto oleico en Colombia y su mercado",
                "speaker": "Martín Herrera, director de investigación",
            },
        ],
    }
    with open(os.path.join(tmp_path, "guaicaramo.json"), "w", encoding="utf-8") as f:
        json.dump(guaicaramo, f, ensure_ascii=False)
    with open(os.path.join(tmp_path, "agenda-congreso.json"), "w", encoding="utf-8") as f:
        json.dump(agenda, f, ensure_ascii=False)
    with open(os.path.join(tmp_path, "roto.json"), "w", encoding="utf-8") as f:
        f.write('{"name": "Documento roto", "seccion": ')
    return str(tmp_path)
