"""LangGraph conversation loop for the Community Assistant.

Architecture:
  A two-node StateGraph:

    1. **chatbot**: sends the whole transcript to the OpenAI chat model,
                     which is bound to the three directory tools
    2. **tools**:   runs every tool call of the last reply, in order, and
                     returns one tool-result message per call

  Routing:
    chatbot → (has tool calls?) → tools → chatbot (loop)
            → (no tool calls?)  → END

  The graph is compiled without a checkpointer.  Conversation memory lives in
  the session's ``Transcript``: ``generate_response`` feeds it in as the
  initial state and appends every node's output back to it as the graph
  streams, so whatever happened before a failure stays in the transcript.
"""

from __future__ import annotations

import logging
from typing import Annotated

from langchain_core.messages import AIMessage, AnyMessage, HumanMessage
from langchain_openai import ChatOpenAI
from langgraph.errors import GraphRecursionError
from langgraph.graph import END, StateGraph
from langgraph.graph.message import add_messages
from typing_extensions import TypedDict

from community_assistant.config import MAX_TOOL_ROUNDS, MODEL_NAME, OPENAI_API_KEY
from community_assistant.services.directory_client import DirectoryClient
from community_assistant.services.metrics import metrics
from community_assistant.sessions import Transcript, has_tool_calls
from community_assistant.tools.directory import (
    TOOL_DESCRIPTIONS,
    ToolCallRequest,
    handle_tool_call,
)

logger = logging.getLogger(__name__)


class ModelServiceError(Exception):
    """The chat-completion call failed; fatal to the current request."""


class ToolLoopExceeded(Exception):
    """The model kept requesting tools past the configured number of rounds."""

    def __init__(self, max_rounds: int):
        self.max_rounds = max_rounds
        super().__init__(f"Model requested tools for more than {max_rounds} rounds")


class AgentState(TypedDict):
    """Graph state: the transcript, extended by each node via ``add_messages``."""

    messages: Annotated[list[AnyMessage], add_messages]


# ── LLM builder ─────────────────────────────────────────────────────


def _build_llm():
    """Build the OpenAI chat model with the directory tools bound."""
    llm = ChatOpenAI(model=MODEL_NAME, api_key=OPENAI_API_KEY)
    return llm.bind_tools(TOOL_DESCRIPTIONS)


# ── Nodes ────────────────────────────────────────────────────────────


def _make_chatbot_node(llm=None):
    """Create the node that asks the model for its next message.

    The bound model is captured in the closure so every round of the loop
    shares one client.
    """
    llm_with_tools = llm if llm is not None else _build_llm()

    async def chatbot_node(state: AgentState) -> dict:
        logger.debug("chatbot node invoked, %d messages", len(state["messages"]))
        try:
            with metrics.track("openai", "chat_completion"):
                response = await llm_with_tools.ainvoke(state["messages"])
        except Exception as exc:
            logger.error("Chat completion failed: %s", exc)
            raise ModelServiceError(str(exc)) from exc
        return {"messages": [response]}

    return chatbot_node


def _make_tools_node(client: DirectoryClient | None = None):
    """Create the node that dispatches the last reply's tool calls.

    Calls run one after another in the order the model listed them, so each
    tool result lines up with its request.
    """

    async def tools_node(state: AgentState) -> dict:
        requests = ToolCallRequest.from_ai_message(state["messages"][-1])
        results = []
        for request in requests:
            logger.info("Tool call %s: %s(%s)", request.id, request.name, request.arguments)
            results.append(await handle_tool_call(request, client))
        return {"messages": results}

    return tools_node


# ── Conditional edge ─────────────────────────────────────────────────


def should_use_tools(state: AgentState) -> str:
    """Route to the tools node while the last reply carries tool calls."""
    last_message = state["messages"][-1]
    if isinstance(last_message, AIMessage) and has_tool_calls(last_message):
        return "tools"
    return END


# ── Graph assembly ───────────────────────────────────────────────────


def create_community_agent(llm=None, client: DirectoryClient | None = None):
    """Build and compile the conversation graph.

    ``llm`` and ``client`` default to the configured OpenAI model and the
    shared directory client; tests inject fakes.
    """
    graph = StateGraph(AgentState)

    graph.add_node("chatbot", _make_chatbot_node(llm))
    graph.add_node("tools", _make_tools_node(client))

    graph.set_entry_point("chatbot")
    graph.add_conditional_edges(
        "chatbot", should_use_tools, {"tools": "tools", END: END},
    )
    graph.add_edge("tools", "chatbot")

    compiled = graph.compile()
    logger.debug("Community agent compiled, model: %s, tools: %d", MODEL_NAME, len(TOOL_DESCRIPTIONS))
    return compiled


def recursion_limit_for(max_tool_rounds: int) -> int:
    """Graph steps for *max_tool_rounds* tool rounds plus the model turn after them.

    One step per chatbot turn and one per tools round.  The model turn that
    follows the last allowed round still runs, so a request for another round
    trips the limit before any of its tools are dispatched.
    """
    return 2 * max_tool_rounds + 1


def _content_text(message: AIMessage) -> str:
    if isinstance(message.content, str):
        return message.content
    return "".join(
        part.get("text", "") if isinstance(part, dict) else str(part)
        for part in message.content
    )


async def generate_response(
    agent,
    transcript: Transcript,
    prompt: str,
    *,
    max_tool_rounds: int = MAX_TOOL_ROUNDS,
) -> str:
    """Append *prompt* to *transcript*, run the loop, and return the final answer.

    Raises ``ModelServiceError`` when the model call fails and
    ``ToolLoopExceeded`` when the model will not stop calling tools.  In both
    cases the messages appended so far stay in the transcript.
    """
    transcript.append(HumanMessage(content=prompt))

    final: AIMessage | None = None
    try:
        async for update in agent.astream(
            {"messages": transcript.messages},
            config={"recursion_limit": recursion_limit_for(max_tool_rounds)},
            stream_mode="updates",
        ):
            for node, output in update.items():
                new_messages = (output or {}).get("messages", [])
                transcript.extend(new_messages)
                logger.debug("%s node appended %d message(s)", node, len(new_messages))
                for message in new_messages:
                    if isinstance(message, AIMessage):
                        final = message
    except GraphRecursionError as exc:
        logger.error("Tool loop exceeded %d rounds", max_tool_rounds)
        raise ToolLoopExceeded(max_tool_rounds) from exc

    if final is None:
        raise ModelServiceError("The model returned no reply")
    return _content_text(final)
