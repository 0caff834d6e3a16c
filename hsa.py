#!/usr/bin/env python
"""
Compute the flows reachable from a port of a declared network.
"""

import argparse
import logging
import sys
import time

from hsanet.common import draw
from hsanet.errors import HSAError
from hsanet.graph_util import find_loops
from hsanet.reachability import reach_all
from hsanet.rules import RuleSet
from hsanet.translation.declaration import to_value
from hsanet.translation.network_grammar import parse_network_file


log = logging.getLogger('hsanet')


def setup_logging(verbosity):
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter('%(levelname)s %(name)s: %(message)s'))
    log.addHandler(handler)
    log.setLevel(level)


def parse_values(assignments):
    """Parse field=value pairs given on the command line"""
    values = {}
    for assignment in assignments:
        field, sep, value = assignment.partition('=')
        if not sep or not field:
            raise HSAError("Expected field=value, got '%s'" % assignment)
        values[field] = to_value(value)
    return values


def main(argv=None):
    parser = argparse.ArgumentParser(description='Symbolic flow reachability.')
    parser.add_argument("-i", required=True, dest="network_file", help="Network declarations file")
    parser.add_argument("-s", required=True, dest="source_port", help="Port the traffic enters at")
    parser.add_argument("-f", dest="values", action="append", default=[],
                        help="Constrain another field of the source, as field=value")
    parser.add_argument("--max-steps", dest="max_steps", default=None, type=int,
                        help="Fail after expanding this many flows")
    parser.add_argument("--dot", dest="dot", default=None, help="Write the derivation graph to a dot file")
    parser.add_argument("-v", dest="verbosity", action="count", default=0, help="More logging")
    args = parser.parse_args(argv)
    setup_logging(args.verbosity)

    try:
        start = time.time()
        rule_set = RuleSet.from_network(parse_network_file(args.network_file))
        source = rule_set.source(to_value(args.source_port), **parse_values(args.values))
        result = reach_all(rule_set, source, max_steps=args.max_steps)
    except (HSAError, IOError) as e:
        print("error: %s" % e, file=sys.stderr)
        return 1
    end = time.time()
    log.info("Reachability time for %s is %s", args.network_file, end - start)

    print("Source: %s" % source)
    for f in result.flows:
        print("Reached: %s" % f)
    print("Loop: %s" % ('yes' if result.loop_detected else 'no'))
    for cycle in find_loops(result.graph):
        print("  " + " -> ".join(str(f) for f in cycle + cycle[:1]))
    if args.dot:
        print("Writing derivation graph to", args.dot)
        draw(result.graph, args.dot)
    return 0


if __name__ == '__main__':
    sys.exit(main())
