"""Participant agent for Consensus Agora.

This module wraps a LangChain chat model as an isolated LangGraph
session. Every dispatched task runs in a fresh session seeded with the
participant's filtered view of the meeting; nothing in the session is
shared with other participants.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage, SystemMessage
from langgraph.graph import END, START, StateGraph

from consensus_agora.config.models import ParticipantConfig
from consensus_agora.state.schema import SessionState
from consensus_agora.utils.logging import get_logger


logger = get_logger(__name__)


class ParticipantAgent:
    """A meeting participant driven by its own chat model.

    The agent compiles a single-node StateGraph over ``SessionState``;
    :meth:`ainvoke` runs one session and returns its full transcript.
    """

    def __init__(self, participant: ParticipantConfig, llm: BaseChatModel):
        """Initialize the participant agent.

        Args:
            participant: Participant configuration
            llm: LangChain chat model instance
        """
        self.participant = participant
        self.llm = llm
        self.system_prompt = self._build_system_prompt()
        self.session_count = 0
        self.created_at = datetime.now()
        self.graph = self._build_graph()

        logger.info(
            f"Initialized participant {participant.id} "
            f"(model={getattr(llm, 'model_name', 'unknown')})"
        )

    @property
    def agent_id(self) -> str:
        return self.participant.id

    @property
    def display_name(self) -> str:
        return self.participant.display_name

    def _build_system_prompt(self) -> str:
        """Compose the system prompt from the participant's role."""
        p = self.participant
        lines = [
            f"You are {p.display_name}, a participant in a meeting that must reach "
            "unanimous agreement.",
        ]
        if p.description:
            lines.append(f"Your responsibilities: {p.description}")
        lines.append(f"Your perspective: {p.perspective}")
        lines.append(
            "Other participants' statements reach you as messages prefixed with their "
            "name or id. Argue from your perspective, engage with their points, and "
            "say clearly what would change your mind. Keep your answers focused on "
            "the task you are given."
        )
        if p.system_prompt:
            lines.append(p.system_prompt)
        return "\n\n".join(lines)

    def _build_graph(self):
        graph = StateGraph(SessionState)
        graph.add_node("respond", self._respond)
        graph.add_edge(START, "respond")
        graph.add_edge("respond", END)
        return graph.compile()

    async def _respond(self, state: SessionState) -> Dict[str, List[BaseMessage]]:
        """Graph node: ask the chat model for the next statement."""
        prompt = [SystemMessage(content=self.system_prompt)] + list(state["messages"])
        response = await self.llm.ainvoke(prompt)

        if isinstance(response, AIMessage):
            response.name = self.agent_id
        else:
            response = AIMessage(content=response.content, name=self.agent_id)
        return {"messages": [response]}

    async def ainvoke(
        self,
        messages: Sequence[BaseMessage],
        recursion_limit: int = 25,
        run_name: Optional[str] = None,
    ) -> List[BaseMessage]:
        """Run one isolated session.

        Args:
            messages: Session input (filtered view plus the task message)
            recursion_limit: Step limit for the session graph
            run_name: Optional name for tracing

        Returns:
            The complete session transcript, input included

        Raises:
            GraphRecursionError: If the session exceeds ``recursion_limit``
        """
        self.session_count += 1
        config: Dict[str, Any] = {"recursion_limit": recursion_limit}
        if run_name:
            config["run_name"] = run_name

        result = await self.graph.ainvoke({"messages": list(messages)}, config=config)
        return result["messages"]

    def get_agent_info(self) -> Dict[str, Any]:
        """Get agent information for logs and snapshots."""
        return {
            "id": self.agent_id,
            "display_name": self.display_name,
            "model": self.participant.model.model,
            "provider": self.participant.model.provider.value,
            "session_count": self.session_count,
            "created_at": self.created_at.isoformat(),
        }
