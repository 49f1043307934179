"""
Command-line interface for arborsplit.
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from .batch_analysis import classify_batch_parallel, find_neuron_files, print_summary
from .classify import classify_neuron
from .config import AnalysisConfig, ClassifierConfig
from .exceptions import ArborSplitError
from .io import load_swc, load_synapses, save_labeled_swc, save_labels, save_results

logger = logging.getLogger(__name__)


def build_config(args) -> AnalysisConfig:
    """Merge a YAML config file with command-line overrides."""
    config = AnalysisConfig.from_yaml(Path(args.config)) if args.config else AnalysisConfig()

    options = dict(config.classifier.__dict__)
    if args.mode:
        options['mode'] = args.mode
    if args.no_polypre:
        options['polypre'] = False
    if args.no_primary_dendrite:
        options['primary_dendrite_threshold'] = None
    elif args.primary_dendrite is not None:
        options['primary_dendrite_threshold'] = args.primary_dendrite
    if args.strict:
        options['strict'] = True
    config.classifier = ClassifierConfig(**options)
    return config


def classify_command(args) -> int:
    """Classify a single neuron and print or save the result."""
    try:
        config = build_config(args)
        tree = load_swc(args.input)
        synapses = load_synapses(args.synapses)
        result = classify_neuron(tree, synapses, config.classifier)
    except (ArborSplitError, OSError, ValueError) as e:
        print(f"Error classifying {args.input}: {e}", file=sys.stderr)
        return 1

    summary = result.summary()
    if args.output:
        output_path = Path(args.output)
        if args.format == "csv":
            save_labels(result, output_path)
        else:
            with open(output_path, 'w') as f:
                json.dump(result.to_dict(), f, indent=2)
    else:
        print(json.dumps(summary, indent=2))

    if args.swc_out:
        save_labeled_swc(result, args.swc_out)

    for warning in result.warnings:
        print(f"Warning: {warning}", file=sys.stderr)
    print(f"Classified {summary['n_nodes']} nodes: segregation index "
          f"{result.segregation_index:.4f} ({result.neuron_type})")
    return 0


def batch_command(args) -> int:
    """Classify every neuron found under the given inputs."""
    try:
        config = build_config(args)
    except ArborSplitError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    batch = config.batch
    recursive = args.recursive or batch.recursive
    suffix = args.synapse_suffix or batch.synapse_suffix
    output_format = args.format or batch.output_format

    pairs = find_neuron_files(args.inputs, recursive=recursive, synapse_suffix=suffix)
    if not pairs:
        print("No neurons with synapse tables found", file=sys.stderr)
        return 1

    if args.max_files and len(pairs) > args.max_files:
        pairs = pairs[:args.max_files]
        logger.info(f"Limited to first {len(pairs)} neurons")

    def progress_callback(completed, total, successful, failed):
        print(f"Progress: {completed}/{total} ({completed/total*100:.1f}%) - "
              f"✓ {successful} ✗ {failed}")

    try:
        results = classify_batch_parallel(
            pairs,
            config=config.classifier,
            n_workers=args.workers or batch.workers,
            include_nodes=args.include_nodes,
            progress_callback=progress_callback if args.progress else None,
        )
    except KeyboardInterrupt:
        print("\nClassification interrupted by user")
        return 1

    save_results(results, args.output, output_format, not args.exclude_failed and batch.include_failed)
    print_summary(results)
    return 0


def add_classifier_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument('--config', help='YAML configuration file')
    parser.add_argument('--mode', choices=['average', 'centrifugal', 'centripetal'],
                        help='Flow centrality flavour (default: average)')
    parser.add_argument('--no-polypre', action='store_true',
                        help='Count each output synapse once instead of once per partner')
    parser.add_argument('--primary-dendrite', type=float, default=None,
                        help='Fraction of maximal flow centrality marking the primary dendrite (default: 0.9)')
    parser.add_argument('--no-primary-dendrite', action='store_true',
                        help='Do not assign a primary dendrite compartment')
    parser.add_argument('--strict', action='store_true',
                        help='Fail on neurons lacking input or output synapses')
    parser.add_argument('-v', '--verbose', action='store_true', help='Enable debug logging')


def main(argv=None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="arborsplit: axon/dendrite classification by synaptic flow centrality")
    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    classify_parser = subparsers.add_parser('classify', help='Classify one neuron')
    classify_parser.add_argument('input', help='Input SWC file')
    classify_parser.add_argument('synapses', help='Synapse CSV table')
    classify_parser.add_argument('-o', '--output', help='Output file (optional)')
    classify_parser.add_argument('-f', '--format', choices=['json', 'csv'], default='json',
                                 help='Output format: full JSON result or per-node CSV table')
    classify_parser.add_argument('--swc-out', help='Also write an SWC with compartments as type ids')
    add_classifier_options(classify_parser)

    batch_parser = subparsers.add_parser('batch', help='Classify many neurons in parallel')
    batch_parser.add_argument('inputs', nargs='+', help='SWC files or directories')
    batch_parser.add_argument('-o', '--output', required=True, help='Output file path')
    batch_parser.add_argument('-f', '--format', choices=['json', 'csv'], default=None, help='Output format')
    batch_parser.add_argument('-w', '--workers', type=int, default=None, help='Number of worker processes')
    batch_parser.add_argument('-r', '--recursive', action='store_true', help='Search directories recursively')
    batch_parser.add_argument('--synapse-suffix', default=None,
                              help='Suffix of synapse tables next to each SWC (default: .synapses.csv)')
    batch_parser.add_argument('--include-nodes', action='store_true', help='Include per-node tables')
    batch_parser.add_argument('--exclude-failed', action='store_true', help='Exclude failed neurons from output')
    batch_parser.add_argument('--max-files', type=int, default=None, help='Maximum number of neurons to process')
    batch_parser.add_argument('--progress', action='store_true', help='Show detailed progress updates')
    add_classifier_options(batch_parser)

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if getattr(args, 'verbose', False) else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    )

    if args.command == 'classify':
        return classify_command(args)
    elif args.command == 'batch':
        return batch_command(args)
    else:
        parser.print_help()
        return 1


if __name__ == '__main__':
    sys.exit(main())
