import os
import unittest

from hsanet.common import ANY
from hsanet.errors import DeclarationError
from hsanet.errors import StructuralError
from hsanet.flows import CompactFlow
from hsanet.flows import Flow
from hsanet.reachability import reach_all
from hsanet.rules import GenericRule
from hsanet.rules import RuleSet
from hsanet.rules import WireRule
from hsanet.translation.network_grammar import parse_network
from hsanet.translation.network_grammar import parse_network_file


SAMPLE = os.path.join(os.path.dirname(os.path.abspath(__file__)),
                      os.pardir, 'examples', 'sample-networks.pl')


def at(port, dst=ANY):
    return Flow([CompactFlow([('port', port), ('dst', dst)])])


class TestSampleFile(unittest.TestCase):
    def setUp(self):
        self.network = parse_network_file(SAMPLE)

    def test_fields(self):
        self.assertEqual(self.network.fields, ('port', 'dst'))

    def test_rules(self):
        rules = self.network.rules
        self.assertEqual(len(rules), 16)
        self.assertEqual(rules[0], WireRule('p1', 'p2'))
        self.assertEqual(rules[9], WireRule('p20', 'p24'))
        self.assertEqual(rules[11], GenericRule(at('p31'), at(ANY, 'p33'), (('port', 'p32'),)))
        self.assertEqual(rules[14], GenericRule(at('p41'), at(ANY, 'p41'),
                                                (('port', 'p42'), ('dst', 'p49'))))
        self.assertEqual(rules[15], WireRule('p42', 'p49'))

    def test_firewall_scenario(self):
        rule_set = RuleSet.from_network(self.network)
        passed = reach_all(rule_set, rule_set.source('p30', dst='p33'))
        self.assertIn(at('p33', 'p33'), passed.reachable)
        blocked = reach_all(rule_set, rule_set.source('p30', dst='p34'))
        self.assertEqual(blocked.reachable, frozenset([at('p31', 'p34')]))

    def test_star_scenario(self):
        rule_set = RuleSet.from_network(self.network)
        result = reach_all(rule_set, rule_set.source('p20'))
        self.assertEqual(result.reachable,
                         frozenset([at('p21'), at('p22'), at('p23'), at('p24')]))
        self.assertFalse(result.loop_detected)


class TestParser(unittest.TestCase):
    def test_comments_and_directives(self):
        text = """
        % a line comment
        :- style_check(-discontiguous).
        /* a block
           comment */
        wireRule(p1, p2). % trailing
        :- load_test_files([]).
        """
        network = parse_network(text)
        self.assertEqual(network.rules, (WireRule('p1', 'p2'),))

    def test_default_fields(self):
        self.assertEqual(parse_network('wireRule(a, b).').fields, ('port', 'dst'))

    def test_fields_from_generic_rule(self):
        text = 'genericRule([[[src, a], [dst, any]]], [[[src, any], [dst, any]]], [[dst, b]]).'
        network = parse_network(text)
        self.assertEqual(network.fields, ('src', 'dst'))
        rule = network.rules[0]
        self.assertEqual(rule.overwrite, (('dst', 'b'),))
        self.assertIs(rule.filter[0].get('src'), ANY)

    def test_declared_fields(self):
        network = parse_network('fields([port, src, dst]).\nwireRule(a, b).')
        self.assertEqual(network.fields, ('port', 'src', 'dst'))
        rule_set = RuleSet.from_network(network)
        self.assertEqual(rule_set.apply(rule_set.source('a', src='x')),
                         [rule_set.source('b', src='x')])

    def test_fields_declared_twice(self):
        with self.assertRaises(DeclarationError):
            parse_network('fields([port, dst]).\nfields([port]).')

    def test_empty_flows_and_overwrite(self):
        network = parse_network('genericRule([], [], []).')
        self.assertEqual(network.rules, (GenericRule(Flow(), Flow(), ()),))

    def test_union_match(self):
        text = 'genericRule([[[port, a], [dst, any]], [[port, b], [dst, any]]], ' \
               '[[[port, any], [dst, any]], [[port, any], [dst, any]]], [[port, c]]).'
        network = parse_network(text)
        rule = network.rules[0]
        self.assertEqual(len(rule.match), 2)
        self.assertEqual(len(rule.filter), 1)
        with self.assertRaises(StructuralError):
            RuleSet.from_network(network)

    def test_union_rule_fires(self):
        text = 'genericRule([[[port, a], [dst, any]], [[port, b], [dst, any]]], ' \
               '[[[port, any], [dst, h]], [[port, any], [dst, any]]], [[port, c]]).'
        rule_set = RuleSet.from_network(parse_network(text))
        source = Flow([CompactFlow([('port', 'a'), ('dst', ANY)]),
                       CompactFlow([('port', 'b'), ('dst', 'g')])])
        self.assertEqual(rule_set.apply(source),
                         [Flow([CompactFlow([('port', 'c'), ('dst', 'h')]),
                                CompactFlow([('port', 'c'), ('dst', 'g')])])])

    def test_wildcard_wire_ports(self):
        network = parse_network('wireRule(any, p2).')
        self.assertEqual(network.rules, (WireRule(ANY, 'p2'),))

    def test_malformed(self):
        with self.assertRaises(DeclarationError) as cm:
            parse_network('wireRule(p1, p2).\nwireRule(p2 p3).')
        self.assertEqual(cm.exception.lineno, 2)

    def test_rendering_parses_back(self):
        network = parse_network_file(SAMPLE)
        rule_set = RuleSet.from_network(network)
        self.assertEqual(parse_network(str(rule_set)).rules, network.rules)
