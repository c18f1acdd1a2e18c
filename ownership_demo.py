#!/usr/bin/env python3
"""
Ownership Model Demo

Usage:
    python ownership_demo.py [demo] [--trace LEVEL] [--config PATH] [--stats] [--heap]

Examples:
    python ownership_demo.py                     # Run every demo
    python ownership_demo.py rc                  # Shared tails and strong counts
    python ownership_demo.py tree --trace ops    # Tree with weak parent links, traced
    python ownership_demo.py cycle --heap        # Leaking cycle, then dump the heap
    python ownership_demo.py refcell --violate   # Break the borrowing rules (exit 101)
"""

import sys
import argparse

from ownership import (
    BorrowError, ConfigError, Rc, TraceLevel, append_child, apply_config,
    for_each, load_config, new_cycle_node, new_node, link_mutually, parent_of,
)
from ownership import cons_list
from ownership.limit_tracker import FileMessenger, LimitTracker, RecordingMessenger

PANIC_EXIT_CODE = 101

DEMOS = ("rc", "refcell", "tree", "cycle", "drop")


def demo_rc(config):
    """Several lists sharing one tail."""
    print("String")
    s = cons_list.from_iterable(["hello", "world"])
    cons_list.for_each(s, print)
    s.release()

    a = cons_list.from_iterable([5, 10])
    print(f"count after creating `a` = {a.strong_count()}")
    b = cons_list.cons(3, a.clone())
    print(f"count after creating `b` = {a.strong_count()}")
    with cons_list.cons(4, a.clone()) as c:
        print(f"count after creating `c` = {a.strong_count()}")
        for lst in (a, b, c):
            print(cons_list.to_list(lst))
        print("do this twice to make sure nothing was moved")
        for lst in (a, b, c):
            print(cons_list.to_list(lst))
    print(f"count after `c` goes out of scope = {a.strong_count()}")
    b.release()
    a.release()


def demo_refcell(config, violate: bool = False):
    """Interior mutability through a shared messenger."""
    file_tracker = LimitTracker(FileMessenger(config.log_path), config.tracker_max)
    file_tracker.set_value(config.tracker_max * 95 // 100)

    messenger = RecordingMessenger()
    tracker = LimitTracker(messenger, config.tracker_max)
    tracker.set_value(config.tracker_max * 80 // 100)
    print(f"sent messages: {messenger.messages()}")

    if violate:
        messenger.try_to_violate_the_borrowing_rules()


def demo_tree(config):
    """Strong children, weak parents."""
    def announce(node):
        print(f"dropping node {node.value}")

    leaf = new_node(3, on_drop=announce)
    print(f"leaf parent = {parent_of(leaf)}")
    print(f"leaf strong = {leaf.strong_count()}, weak = {leaf.weak_count()}")

    branch = new_node(5, on_drop=announce)
    append_child(branch, leaf.clone())

    parent = parent_of(leaf)
    print(f"leaf parent = {parent.value.value}")
    parent.release()

    visited = []
    for_each(branch, visited.append)
    print(f"pre-order: {visited}")
    print(f"branch strong = {branch.strong_count()}, weak = {branch.weak_count()}")
    print(f"leaf strong = {leaf.strong_count()}, weak = {leaf.weak_count()}")

    branch.release()
    print(f"leaf parent = {parent_of(leaf)}")
    print(f"leaf strong = {leaf.strong_count()}, weak = {leaf.weak_count()}")
    leaf.release()


def demo_cycle(config):
    """Two nodes owning each other never get dropped."""
    def announce(node):
        print(f"dropping node {node.value}")

    a = new_cycle_node("a", on_drop=announce)
    b = new_cycle_node("b", on_drop=announce)
    link_mutually(a, b)
    print(f"a strong = {a.strong_count()}, b strong = {b.strong_count()}")

    watch_a, watch_b = a.downgrade(), b.downgrade()
    a.release()
    b.release()
    print(f"after releasing a and b: a strong = {watch_a.strong_count()}, "
          f"b strong = {watch_b.strong_count()}")
    watch_a.release()
    watch_b.release()


def demo_drop(config):
    """Hooks run in release order, each exactly once."""
    def announce(data):
        print(f"Dropping CustomSmartPointer with data `{data}`!")

    c = Rc.new("my stuff", on_drop=announce)
    d = Rc.new("other stuff", on_drop=announce)
    print("CustomSmartPointers created.")
    d.release()
    c.release()


def run_demos(names, config, violate: bool = False):
    for name in names:
        print(f"== {name}")
        if name == "rc":
            demo_rc(config)
        elif name == "refcell":
            demo_refcell(config, violate=violate)
        elif name == "tree":
            demo_tree(config)
        elif name == "cycle":
            demo_cycle(config)
        elif name == "drop":
            demo_drop(config)


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Ownership Model Demo",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s                      Run every demo
  %(prog)s tree --trace ops     Trace clone/downgrade/upgrade/release
  %(prog)s cycle --heap         Show the leaked blocks
  %(prog)s refcell --violate    Break the borrowing rules (exit 101)
        """
    )

    parser.add_argument("demo", nargs="?", default="all", choices=DEMOS + ("all",),
                        help="Demo to run (default: all)")
    parser.add_argument("--config", help="Path to ownership.toml")
    parser.add_argument("--trace", help="Trace level: none, lifecycle, ops, borrows, all or 0-4")
    parser.add_argument("--log-path", help="File the refcell demo's messenger appends to")
    parser.add_argument("--stats", action="store_true",
                        help="Print heap statistics after the demos")
    parser.add_argument("--heap", action="store_true",
                        help="Print blocks still on the heap after the demos")
    parser.add_argument("--violate", action="store_true",
                        help="Take two exclusive borrows in the refcell demo")

    args = parser.parse_args(argv)

    try:
        config = load_config(args.config)
        if args.trace is not None:
            try:
                config.trace_level = TraceLevel.parse(args.trace)
            except ValueError as e:
                raise ConfigError(str(e))
        if args.log_path is not None:
            config.log_path = args.log_path
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(2)

    diagnostics = apply_config(config)
    names = DEMOS if args.demo == "all" else (args.demo,)

    try:
        run_demos(names, config, violate=args.violate)
    except BorrowError as e:
        sys.stdout.flush()
        print(f"panicked: {e}", file=sys.stderr)
        sys.exit(PANIC_EXIT_CODE)

    if args.stats:
        diagnostics.dump_stats(sys.stdout)
    if args.heap:
        diagnostics.dump_heap(sys.stdout)


if __name__ == "__main__":
    main()
