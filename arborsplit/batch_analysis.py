"""
Parallel compartment classification of many neurons.
"""

import logging
import multiprocessing as mp
import time
import traceback
from concurrent.futures import ProcessPoolExecutor, as_completed
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Union

import numpy as np

from .classify import classify_neuron
from .config import ClassifierConfig
from .io import load_swc, load_synapses

logger = logging.getLogger(__name__)

NeuronFiles = Tuple[Path, Path]


def classify_single_neuron(swc_path: Union[str, Path],
                           synapse_path: Union[str, Path],
                           config: Optional[ClassifierConfig] = None,
                           include_nodes: bool = False) -> Dict[str, Any]:
    """
    Classify one neuron from files.

    Never raises; failures are returned as records with
    ``analysis_successful`` set to False.

    Args:
        swc_path: Path to the skeleton SWC file
        synapse_path: Path to the synapse CSV table
        config: Classifier options
        include_nodes: Include the per-node table in the result

    Returns:
        Dictionary with summary results and file information
    """
    try:
        tree = load_swc(swc_path)
        synapses = load_synapses(synapse_path)
        classification = classify_neuron(tree, synapses, config)

        result = {
            'filename': Path(swc_path).name,
            'filepath': str(swc_path),
            'synapse_file': str(synapse_path),
            'analysis_successful': True,
            'error_message': None,
        }
        if include_nodes:
            result.update(classification.to_dict())
        else:
            result.update(classification.summary())
            result['warnings'] = list(classification.warnings)
        return result

    except Exception as e:
        return {
            'filename': Path(swc_path).name,
            'filepath': str(swc_path),
            'synapse_file': str(synapse_path),
            'analysis_successful': False,
            'error_message': f"{type(e).__name__}: {e}",
            'traceback': traceback.format_exc(),
        }


def classify_batch_parallel(pairs: Sequence[NeuronFiles],
                            config: Optional[ClassifierConfig] = None,
                            n_workers: Optional[int] = None,
                            include_nodes: bool = False,
                            progress_callback: Optional[Callable[[int, int, int, int], None]] = None
                            ) -> List[Dict[str, Any]]:
    """
    Classify many neurons with a process pool.

    Each neuron is an independent task; a malformed neuron is reported and
    skipped without aborting the rest of the batch.

    Args:
        pairs: (SWC path, synapse table path) per neuron
        config: Classifier options shared by all neurons
        n_workers: Number of worker processes (default: CPU count)
        include_nodes: Include per-node tables in the results
        progress_callback: Called with (completed, total, successful, failed)

    Returns:
        List of result dictionaries, in completion order
    """
    if not pairs:
        return []
    config = config or ClassifierConfig()
    if n_workers is None:
        n_workers = min(mp.cpu_count(), len(pairs))

    logger.info(f"Classifying {len(pairs)} neurons using {n_workers} workers...")

    results = []
    successful = 0
    failed = 0
    start_time = time.time()

    with ProcessPoolExecutor(max_workers=n_workers) as executor:
        future_to_pair = {
            executor.submit(classify_single_neuron, swc, syn, config, include_nodes): (swc, syn)
            for swc, syn in pairs
        }

        for i, future in enumerate(as_completed(future_to_pair), 1):
            swc, syn = future_to_pair[future]
            try:
                result = future.result()
            except Exception as e:
                result = {
                    'filename': Path(swc).name,
                    'filepath': str(swc),
                    'synapse_file': str(syn),
                    'analysis_successful': False,
                    'error_message': f"Unexpected error: {e}",
                    'traceback': traceback.format_exc(),
                }
            results.append(result)

            if result['analysis_successful']:
                successful += 1
                print(f"✓ [{i}/{len(pairs)}] {result['filename']} - "
                      f"SI {result['segregation_index']:.3f} ({result['neuron_type']})")
            else:
                failed += 1
                print(f"✗ [{i}/{len(pairs)}] {result['filename']} - {result['error_message']}")

            if progress_callback:
                progress_callback(i, len(pairs), successful, failed)

    elapsed_time = time.time() - start_time
    logger.info(f"Completed in {elapsed_time:.2f} seconds: {successful} classified, {failed} failed")
    return results


def find_neuron_files(input_paths: Sequence[Union[str, Path]],
                      recursive: bool = False,
                      synapse_suffix: str = ".synapses.csv") -> List[NeuronFiles]:
    """
    Pair SWC files with their synapse tables.

    ``cell.swc`` pairs with ``cell<synapse_suffix>`` in the same directory.
    SWC files without a synapse table are skipped with a warning.

    Args:
        input_paths: Files or directories to search
        recursive: Whether to search recursively in directories
        synapse_suffix: Suffix replacing ``.swc`` to name the synapse table

    Returns:
        Sorted list of (SWC path, synapse path)
    """
    swc_files = []
    for input_path in input_paths:
        path = Path(input_path)
        if path.is_file() and path.suffix.lower() == '.swc':
            swc_files.append(path)
        elif path.is_dir():
            swc_files.extend(path.rglob("*.swc") if recursive else path.glob("*.swc"))
        else:
            logger.warning(f"{path} is not a valid file or directory")

    pairs = []
    for swc in sorted(swc_files):
        synapse_path = swc.with_name(swc.stem + synapse_suffix)
        if synapse_path.exists():
            pairs.append((swc, synapse_path))
        else:
            logger.warning(f"No synapse table for {swc.name} (expected {synapse_path.name})")
    return pairs


def print_summary(results: List[Dict[str, Any]]) -> None:
    """Print summary statistics of classification results."""
    successful_results = [r for r in results if r.get('analysis_successful', False)]

    if not successful_results:
        print("No successful classifications to summarize")
        return

    print(f"\nSummary Statistics ({len(successful_results)} successful classifications):")

    for feature in ('segregation_index', 'n_inputs', 'n_outputs', 'n_axon_nodes', 'n_dendrite_nodes'):
        values = [r[feature] for r in successful_results if r.get(feature) is not None]
        if values:
            print(f"  {feature}:")
            print(f"    Mean: {np.mean(values):.4f}")
            print(f"    Std:  {np.std(values):.4f}")
            print(f"    Min:  {np.min(values):.4f}")
            print(f"    Max:  {np.max(values):.4f}")

    types = {}
    for r in successful_results:
        types[r['neuron_type']] = types.get(r['neuron_type'], 0) + 1
    for kind, count in sorted(types.items()):
        print(f"  {kind}: {count}")
