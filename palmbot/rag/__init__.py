"""
RAG (Retrieval Augmented Generation) module for the congress assistant.

This package turns the FEDEPALMA / Grupo Guaicaramo JSON knowledge base into
searchable chunks and selects the context handed to the chat model.

Components:
    - loader: Flattens the JSON documents into titled, categorized chunks
    - lexical: Weighted keyword scoring of chunks against a query
    - embedder: Generates embeddings via OpenAI and indexes the corpus
    - chunk_store: ChromaDB persistent collection management
    - vector: Cosine similarity search with a bounded timeout
    - context: Assembles ranked chunks into a bounded context block
    - cache: Time-bounded memoization of the loaded corpus
    - retriever: Agenda / vector / lexical fallback pipeline
"""
