#!/usr/bin/env python3
"""
Tests for loading the JSON knowledge base into search chunks
"""
import json
import logging
import os

from palmbot.rag import loader
from palmbot.rag.loader import (
    MAX_CHUNK_CHARS,
    build_chunks,
    categorize,
    document_name,
    extract_keywords,
    flatten_json,
    load_documents,
    section_of,
)
from palmbot.rag.lexical import search_documents


def test_flatten_json_keeps_significant_strings_with_paths():
    data = {
        "id": "x-1",
        "perfil": {
            "descripcion": "Empresa agroindustrial dedicada a la palma de aceite",
            "lemas": ["Palma sostenible", "corto"],
            "hectareas": 9400,
            "activa": True,
        },
        "sedes": [{"ciudad": "Barranca de Upía, Meta, Colombia"}],
    }

    fragments = flatten_json(data)

    assert fragments == [
        ("perfil.descripcion", "Empresa agroindustrial dedicada a la palma de aceite"),
        ("perfil.lemas[0]", "Palma sostenible"),
        ("sedes[0].ciudad", "Barranca de Upía, Meta, Colombia"),
    ]


def test_flatten_json_tolerates_scalars_and_empty_values():
    assert flatten_json(None) == []
    assert flatten_json(42) == []
    assert flatten_json([]) == []
    assert flatten_json({"a": {}, "b": [None, 3.5]}) == []


def test_section_of_keeps_array_index():
    assert section_of("historia.resumen") == "historia"
    assert section_of("historia.hitos[1]") == "historia"
    assert section_of("plenarias[0].tema") == "plenarias[0]"
    assert section_of("plenarias[12]") == "plenarias[12]"
    assert section_of("[2].nombre") == "[2]"
    assert section_of("titulo") == "titulo"
    assert section_of("") == "root"


def test_categorize_first_matching_rule_wins():
    assert categorize("agenda-congreso.json") == "eventos"
    assert categorize("congreso-dao.json") == "eventos"
    assert categorize("fundacion-guaicaramo.json") == "fundacion"
    assert categorize("dao.json") == "empresas"
    assert categorize("Sirius-Regenerative.json") == "empresas"
    assert categorize("guaicaramo.json") == "empresas"
    assert categorize("preguntas-frecuentes.json") == "general"


def test_extract_keywords_is_case_insensitive_and_bounded():
    content = "FEDEPALMA y CENIPALMA trabajan en palmicultura sostenible con aceite de palma OXG"
    keywords = extract_keywords(content)
    assert "fedepalma" in keywords
    assert "cenipalma" in keywords
    assert "OxG" in keywords
    assert "sirius" not in keywords

    everything = " ".join(loader.DOMAIN_VOCABULARY)
    assert len(extract_keywords(everything)) == loader.MAX_KEYWORDS


def test_document_name_fallbacks():
    assert document_name("x.json", {"name": "Guaicaramo S.A.S."}) == "Guaicaramo S.A.S."
    nested = {"congress_info": {"name": "Congreso Palmero 2025"}, "otro": {"name": "No"}}
    assert document_name("agenda.json", nested) == "Congreso Palmero 2025"
    assert document_name("sirius-regenerative_2025.json", ["lista"]) == "sirius regenerative 2025"


def test_build_chunks_one_chunk_per_section():
    data = {
        "name": "Del Llano Alto Oleico",
        "historia": {
            "origen": "DAO nació hace más de diez años como pionera del aceite alto oleico en Colombia.",
            "detalle": {"hito": "Primera exportación de aceite alto oleico a Europa en 2015 desde los Llanos."},
        },
        "productos": [
            "Aceite de palma alto oleico refinado para la industria de alimentos saludables "
            "y para la cosmética natural de alta calidad",
            "Oleína alto oleico",
        ],
        "contacto": {"correo": "contacto@dao.example.com"},
    }

    chunks = build_chunks("dao.json", data, "empresas")

    assert [c.metadata.section for c in chunks] == ["historia", "productos[0]"]
    historia = chunks[0]
    assert historia.id == "dao.json_historia_1"
    assert historia.title == "Del Llano Alto Oleico - historia"
    assert historia.source == "FEDEPALMA - dao.json"
    assert historia.category == "empresas"
    assert historia.metadata.document_type == "empresas"
    assert historia.content.startswith("DAO nació hace más de diez años")
    assert ". Primera exportación" in historia.content
    assert "oleico" in historia.metadata.keywords
    # "Oleína alto oleico" is a list item too short for section content
    assert "Oleína" not in chunks[1].content
    assert len({c.id for c in chunks}) == len(chunks)


def test_build_chunks_truncates_and_drops_short_sections():
    sesiones = {
        f"sesion_{i}": f"Conferencia número {i} sobre sostenibilidad del cultivo de palma"
        for i in range(100)
    }
    data = {
        "programa": sesiones,
        "nota": "Texto breve pero con más de cincuenta caracteres de largo.",
    }

    chunks = build_chunks("agenda.json", data, "eventos")

    assert len(chunks) == 1
    assert chunks[0].metadata.section == "programa"
    assert len(chunks[0].content) == MAX_CHUNK_CHARS
    assert chunks[0].title == "agenda - programa"


def _plenaria(i, tema=None):
    return {
        "hora": f"{8 + i % 10}:00 a.m. - {9 + i % 10}:00 a.m.",
        "tema": tema or f"Sesión plenaria número {i} sobre avances del cultivo de palma en Colombia",
        "speaker": "Ponente invitado de la Federación Nacional de Cultivadores",
    }


def test_every_item_of_a_long_array_gets_its_own_chunk():
    plenarias = [_plenaria(i) for i in range(19)]
    plenarias.append(_plenaria(19, "Biochar y suelos regenerativos en plantaciones de palma de aceite"))

    chunks = build_chunks("agenda-congreso.json", {"plenarias": plenarias}, "eventos")

    assert [c.metadata.section for c in chunks] == [f"plenarias[{i}]" for i in range(20)]
    assert len({c.id for c in chunks}) == 20
    assert chunks[19].title == "agenda congreso - plenarias[19]"
    # "[1]" must not absorb "[10]".."[19]"
    assert "número 1 sobre" in chunks[1].content
    assert "número 10 sobre" not in chunks[1].content

    results = search_documents(chunks, "biochar", threshold=0.0)
    assert [r.chunk.metadata.section for r in results] == ["plenarias[19]"]


def _write(directory, file_name, payload):
    with open(os.path.join(directory, file_name), "wb") as f:
        f.write(payload)


def test_load_documents_top_level_list(tmp_path):
    preguntas = [
        {
            "pregunta": "¿Dónde se realiza el Congreso Nacional de Palmicultores este año?",
            "respuesta": "En el Centro de Convenciones de Bogotá, del 23 al 25 de septiembre.",
        },
        {
            "pregunta": "¿Qué empresas del Grupo Guaicaramo participan en la muestra comercial?",
            "respuesta": "Guaicaramo, DAO y Sirius Regenerative tienen stand en el pabellón principal.",
        },
    ]
    _write(str(tmp_path), "preguntas-frecuentes.json", json.dumps(preguntas).encode("utf-8"))

    corpus = load_documents(str(tmp_path))

    assert [c.id for c in corpus] == [
        "preguntas-frecuentes.json_[0]_0",
        "preguntas-frecuentes.json_[1]_2",
    ]
    assert corpus[1].title == "preguntas frecuentes - [1]"
    assert corpus[1].category == "general"
    assert "Sirius Regenerative" in corpus[1].content


def test_load_documents_bare_top_level_string(tmp_path):
    texto = (
        "Bienvenidos al Congreso Nacional de Palmicultores 2025, el encuentro anual "
        "del sector de la palma de aceite en Colombia."
    )
    _write(str(tmp_path), "bienvenida.json", json.dumps(texto).encode("utf-8"))

    corpus = load_documents(str(tmp_path))

    assert len(corpus) == 1
    assert corpus[0].id == "bienvenida.json_root_0"
    assert corpus[0].metadata.section == "root"
    assert corpus[0].content == texto


def test_load_documents_skips_file_that_is_not_utf8(tmp_path, caplog):
    valido = {"historia": {"resumen": "Sirius Regenerative ofrece bioinsumos y biochar "
                                      "para la regeneración de suelos en cultivos de palma de aceite."}}
    _write(str(tmp_path), "sirius.json", json.dumps(valido).encode("utf-8"))
    latin1 = '{"historia": {"resumen": "Café y palma de aceite sostenible en la región de la Orinoquía."}}'
    _write(str(tmp_path), "latin1.json", latin1.encode("latin-1"))

    with caplog.at_level(logging.ERROR, logger="palmbot.rag.loader"):
        corpus = load_documents(str(tmp_path))

    assert [c.id for c in corpus] == ["sirius.json_historia_0"]
    assert "latin1.json" in caplog.text


def test_load_documents_skips_malformed_file(data_dir, caplog):
    with caplog.at_level(logging.ERROR, logger="palmbot.rag.loader"):
        corpus = load_documents(data_dir)

    assert [c.id for c in corpus] == [
        "agenda-congreso.json_plenarias[0]_3",
        "guaicaramo.json_historia_0",
    ]
    assert {c.source for c in corpus} == {
        "FEDEPALMA - agenda-congreso.json",
        "FEDEPALMA - guaicaramo.json",
    }
    assert corpus[0].title == "Congreso Nacional de Palmicultores 2025 - plenarias[0]"
    assert corpus[0].category == "eventos"
    assert corpus[1].category == "empresas"
    assert "roto.json" in caplog.text


def test_load_documents_respects_chunk_invariants(data_dir):
    corpus = load_documents(data_dir)
    for chunk in corpus:
        assert loader.MIN_CHUNK_CHARS < len(chunk.content) <= MAX_CHUNK_CHARS
        assert chunk.category in ("eventos", "fundacion", "empresas", "general")


def test_load_documents_missing_or_empty_directory(tmp_path):
    assert load_documents(os.path.join(str(tmp_path), "no-existe")) == []
    assert load_documents(str(tmp_path)) == []

    with open(os.path.join(str(tmp_path), "notas.txt"), "w") as f:
        f.write(json.dumps({"ignored": "not a json extension"}))
    assert load_documents(str(tmp_path)) == []


if __name__ == "__main__":
    import pytest
    raise SystemExit(pytest.main([__file__, "-v"]))
