"""
Reachability over the derivation graph of a rule set.

Starting from a source flow, every rule is applied to every flow discovered so
far until no new flow shows up. Flows are keyed by structural equality, so
each one is expanded once, and the rule applications are recorded as edges of
a derivation graph used to tell loops apart from converging paths.
"""

import logging

from collections import deque
from collections import namedtuple

import networkx as nx

from hsanet.common import ANY
from hsanet.common import DERIVATION_EDGE
from hsanet.common import EDGE_TYPE
from hsanet.common import RULE_ATTR
from hsanet.errors import TraversalLimitExceeded
from hsanet.graph_util import has_loop
from hsanet.rules import apply_rule
from hsanet.rules import rule_to_str


logger = logging.getLogger(__name__)


# reachable: frozenset of every flow derived by at least one rule application
# flows: the same flows in discovery order
# loop_detected: the derivation graph reachable from the source has a cycle
# graph: nx.DiGraph, flows as nodes, one edge per (flow, rule, output)
# steps: number of flows expanded
ReachResult = namedtuple('ReachResult', ['reachable', 'flows', 'loop_detected',
                                         'graph', 'steps'])


def domain_bound(rule_set, source):
    """
    Number of distinct flows that rules can derive from source.

    Rule application never makes a flow longer, so the bound counts the
    flows of at most len(source) compact flows over the values known for
    each field, ANY included.
    """
    domain = rule_set.values()
    for cflow in source:
        for field, value in cflow:
            if value is not ANY:
                domain[field].add(value)
    num_cflows = 1
    for field in rule_set.fields:
        num_cflows *= len(domain[field]) + 1
    return sum(num_cflows ** k for k in range(len(source) + 1))


class Reachability(object):
    """Computes the flows reachable from a source through a rule set"""

    def __init__(self, rule_set, max_steps=None):
        self.rule_set = rule_set
        self.max_steps = max_steps

    def run(self, source):
        self.rule_set.check_flow(source)
        max_steps = self.max_steps
        if max_steps is None:
            max_steps = domain_bound(self.rule_set, source)
        graph = nx.DiGraph()
        graph.add_node(source)
        visited = set()
        derived = []
        derived_set = set()
        frontier = deque([source])
        steps = 0
        while frontier:
            current = frontier.popleft()
            if current in visited:
                continue
            if steps >= max_steps:
                raise TraversalLimitExceeded(steps, max_steps)
            steps += 1
            visited.add(current)
            logger.debug('Expanding %s', current)
            for declared, rule in self.rule_set.pairs():
                out = apply_rule(rule, current, self.rule_set.port_field)
                if out.is_empty():
                    continue
                graph.add_edge(current, out, **{EDGE_TYPE: DERIVATION_EDGE,
                                                RULE_ATTR: rule_to_str(declared)})
                if out not in derived_set:
                    derived_set.add(out)
                    derived.append(out)
                if out not in visited:
                    frontier.append(out)
        loop = has_loop(graph)
        logger.info('Reached %d flows from %s in %d steps, loop: %s',
                    len(derived), source, steps, loop)
        return ReachResult(frozenset(derived), tuple(derived), loop,
                           graph, steps)

    def reach_all(self, source):
        return self.run(source).reachable

    def has_loop(self, source):
        return self.run(source).loop_detected


def reach_all(rule_set, source, max_steps=None):
    """Run the reachability analysis of source over rule_set"""
    return Reachability(rule_set, max_steps).run(source)
