"""Tests for workflow execution ordering."""

from flowbuilder.core.graph_orderer import GraphOrderer

from .conftest import linear_pipeline, make_definition


class TestGraphOrderer:
    """Test cases for GraphOrderer."""

    def setup_method(self):
        self.orderer = GraphOrderer()

    def test_linear_pipeline(self):
        assert self.orderer.order(linear_pipeline()) == ["query", "kb", "llm", "output"]

    def test_user_query_first_regardless_of_node_order(self):
        definition = make_definition(
            [("output", "Output"), ("llm", "LLMEngine"), ("query", "UserQuery")],
            [("query", "llm"), ("llm", "output")],
        )

        order = self.orderer.order(definition)

        assert order[0] == "query"
        assert order == ["query", "llm", "output"]

    def test_disconnected_nodes_appended_once(self):
        definition = make_definition(
            [("query", "UserQuery"), ("a", "LLMEngine"), ("b", "KnowledgeBase"), ("c", "Output")],
            [("query", "c"), ("a", "b"), ("b", "a")],
        )

        order = self.orderer.order(definition)

        # a and b form a cycle with no entry point
        assert order == ["query", "c", "a", "b"]
        assert len(order) == len(set(order))

    def test_empty_definition(self):
        assert self.orderer.order(make_definition([])) == []

    def test_breadth_first_tie_break(self):
        # "join" is reached from "left" before "right" has run
        definition = make_definition(
            [("start", "UserQuery"), ("left", "KnowledgeBase"), ("right", "LLMEngine"),
             ("join", "Output"), ("tail", "LLMEngine")],
            [("start", "left"), ("start", "right"), ("left", "join"),
             ("right", "tail"), ("tail", "join")],
        )

        assert self.orderer.order(definition) == ["start", "left", "right", "join", "tail"]

    def test_back_edge_does_not_repeat_nodes(self):
        definition = make_definition(
            [("query", "UserQuery"), ("llm", "LLMEngine"), ("output", "Output")],
            [("query", "llm"), ("llm", "output"), ("output", "llm")],
        )

        assert self.orderer.order(definition) == ["query", "llm", "output"]

    def test_full_cycle_falls_back_to_user_query(self):
        definition = make_definition(
            [("llm", "LLMEngine"), ("query", "UserQuery"), ("output", "Output")],
            [("query", "llm"), ("llm", "output"), ("output", "query")],
        )

        assert self.orderer.order(definition) == ["query"]

    def test_full_cycle_without_user_query_keeps_input_order(self):
        definition = make_definition(
            [("b", "LLMEngine"), ("a", "Output")],
            [("a", "b"), ("b", "a")],
        )

        assert self.orderer.order(definition) == ["b", "a"]

    def test_dangling_edges_are_ignored(self):
        definition = make_definition(
            [("query", "UserQuery"), ("output", "Output")],
            [("ghost", "output"), ("query", "missing"), ("query", "output")],
        )

        order = self.orderer.order(definition)

        assert order == ["query", "output"]
        assert "missing" not in order

    def test_dangling_edge_does_not_block_start_node(self):
        definition = make_definition(
            [("query", "UserQuery"), ("llm", "LLMEngine")],
            [("ghost", "query"), ("query", "llm")],
        )

        assert self.orderer.order(definition) == ["query", "llm"]

    def test_padded_ids_on_nodes_and_edges_still_connect(self):
        definition = make_definition(
            [("llm", "LLMEngine"), (" query ", "UserQuery")],
            [(" query ", "llm")],
        )

        assert definition.dangling_edges() == []
        assert self.orderer.order(definition) == ["query", "llm"]

    def test_unknown_kinds_are_still_ordered(self):
        definition = make_definition(
            [("query", "UserQuery"), ("note", "StickyNote"), ("output", "Output")],
            [("query", "note"), ("note", "output")],
        )

        assert self.orderer.order(definition) == ["query", "note", "output"]
