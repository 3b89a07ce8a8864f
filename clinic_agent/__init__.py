"""Clinic SDR Agent — a digital sales/scheduling assistant for clinics.

Architecture Overview
=====================

Each patient message is handled by a **LangGraph** state graph (one turn):

1. **retrieve_knowledge** — queries a Pinecone vector index for snippets
   related to the message.
2. **chatbot** — calls the chat-completions API with the conversation
   history, a step-aware system prompt and three scheduling tools.
3. **tools** — executes the requested tool calls (mocked scheduling actions),
   then **respond** issues one final completion with the results.
4. **update_state** — keyword-based slot filling (name, procedure, unit,
   date, time) and the five-step flow counter.
5. **remember** — upserts a conversation summary into vector memory.

Key Design Decisions
--------------------
- **LLM**: OpenAI-compatible ``/chat/completions`` over ``httpx``; on a rate
  limit or quota error the request is retried once on a cheaper model.
- **Degradation over failure**: provider and memory errors become a fixed
  apology or a no-op, never an HTTP error.
- **Memory**: conversations live in an in-memory store with one lock per
  conversation; vector memory is long-term, best-effort context.
- **Dual Interface**: FastAPI server (production) + CLI chat loop (development).

Package Structure
-----------------
- ``clinic_agent/agent.py`` — LangGraph turn pipeline and ``ConversationAgent``
- ``clinic_agent/config.py`` — Configuration from environment variables / SSM
- ``clinic_agent/models.py`` — Conversation and Message models
- ``clinic_agent/state_tracker.py`` — Slot rules and step tracking
- ``clinic_agent/prompts.py`` — System prompt
- ``clinic_agent/server.py`` — FastAPI application
- ``clinic_agent/main.py`` — CLI chat interface
- ``clinic_agent/services/`` — Provider clients and the conversation store
- ``clinic_agent/tools/`` — LangChain scheduling tools
- ``clinic_agent/api/`` — FastAPI routes and Pydantic schemas
"""
