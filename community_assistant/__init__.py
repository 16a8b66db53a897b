"""Community Assistant: a chat assistant for senior-living community administrators.

Architecture Overview
=====================

An administrator's prompt goes to an OpenAI chat model that can call three
read-only directory tools backed by the community's GraphQL endpoint.  The
conversation loop is a **LangGraph** state machine with two nodes:

1. **chatbot**: sends the session transcript to the model, which either
   answers or asks for tool calls.

2. **tools**: runs the requested directory queries in order and appends one
   tool result per call.

Routing: chatbot → (tool calls?) → tools → chatbot (loop until no tool calls → END)

Key Design Decisions
--------------------
- **Transcript ownership**: each ``Session`` owns its transcript and a lock;
  the ``default`` session gives every caller the same shared conversation.
- **Tool failures are text**: unknown tools, bad arguments and directory
  errors become the tool result so the model can react to them.
- **Bounded loop**: more than ``MAX_TOOL_ROUNDS`` tool rounds aborts the
  request with ``ToolLoopExceeded``.
- **No caching, no retries**: every tool call re-queries the directory.

Package Structure
-----------------
- ``community_assistant/agent.py``: LangGraph StateGraph and ``generate_response``
- ``community_assistant/sessions.py``: transcripts and sessions
- ``community_assistant/config.py``: configuration from environment variables
- ``community_assistant/prompts.py``: instruction message
- ``community_assistant/server.py``: FastAPI application
- ``community_assistant/main.py``: CLI chat interface
- ``community_assistant/services/``: GraphQL directory client, metrics
- ``community_assistant/tools/``: tool descriptions and dispatcher
- ``community_assistant/api/``: FastAPI routes and Pydantic schemas
"""
