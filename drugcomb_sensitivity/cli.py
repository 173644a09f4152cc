#!/usr/bin/env python
# import
## batteries
import os
import sys
import argparse
## 3rd party
import pandas as pd
## import from package
from drugcomb_sensitivity.data import build_drug_pairs
from drugcomb_sensitivity.errors import SensitivityError
from drugcomb_sensitivity.logger import set_verbosity
from drugcomb_sensitivity.sensitivity import calculate_sensitivity

# argparse
class CustomFormatter(argparse.ArgumentDefaultsHelpFormatter,
                      argparse.RawDescriptionHelpFormatter):
    pass

def parse_args(argv=None):
    desc = 'Drug combination sensitivity scores'
    epi = """DESCRIPTION:
    Calculate RI, relative IC50 and CSS scores for every block of a
    preprocessed drug combination response table, and write out the
    score tables.

    The response table needs 'block_id', 'conc1' ... 'concN' and
    'response' columns. Blocks with replicated dose combinations are
    bootstrapped, and their statistics are written to a second table.
    """
    parser = argparse.ArgumentParser(description=desc, epilog=epi,
                                     formatter_class=CustomFormatter)
    parser.add_argument('response_csv', type=str,
                        help='Response table (CSV)')
    parser.add_argument('--drug-pairs', type=str, default=None,
                        help='Drug pairs table (CSV). If not provided, it is built from the response table')
    parser.add_argument('--raw', action='store_true', default=False,
                        help='Score the raw "response_origin" column instead of "response"')
    parser.add_argument('--correct-baseline', type=str, default='non',
                        choices=['non', 'part', 'all'],
                        help='Baseline correction method')
    parser.add_argument('--iteration', type=int, default=10,
                        help='Number of bootstrap iterations for replicated blocks')
    parser.add_argument('--seed', type=int, default=123,
                        help='Random seed for the bootstrap')
    parser.add_argument('--threads', type=int, default=1,
                        help='Number of parallel processes')
    parser.add_argument('--output-dir', type=str, default='sensitivity_output',
                        help='Directory to save the output files')
    parser.add_argument('--quiet', action='store_true', default=False,
                        help='Only report warnings and errors')
    return parser.parse_args(argv)

## main interface function
def main(argv=None):
    # parse args
    args = parse_args(argv)
    set_verbosity(quiet=args.quiet)

    # check input
    if not os.path.exists(args.response_csv):
        sys.exit(f'Response file does not exist: {args.response_csv}')
    if args.drug_pairs is not None and not os.path.exists(args.drug_pairs):
        sys.exit(f'Drug pairs file does not exist: {args.drug_pairs}')
    os.makedirs(args.output_dir, exist_ok=True)

    # load tables
    response = pd.read_csv(args.response_csv)
    if 'response_origin' not in response.columns and 'response' in response.columns:
        response['response_origin'] = response['response']
    if args.drug_pairs is None:
        print('No drug pairs table provided. Building one from the response table', file=sys.stderr)
        drug_pairs = build_drug_pairs(response)
    else:
        drug_pairs = pd.read_csv(args.drug_pairs)

    # calculate
    try:
        results = calculate_sensitivity(
            {'drug_pairs': drug_pairs, 'response': response},
            adjusted=not args.raw,
            correct_baseline=args.correct_baseline,
            iteration=args.iteration,
            seed=args.seed,
            threads=args.threads,
            show_progress=not args.quiet
        )
    except (SensitivityError, ValueError) as e:
        sys.exit(f'Error: {e}')

    # write
    outfile = os.path.join(args.output_dir, 'sensitivity_scores.csv')
    results['drug_pairs'].to_csv(outfile, index=False)
    if 'sensitivity_scores_statistics' in results:
        outfile = os.path.join(args.output_dir, 'sensitivity_scores_statistics.csv')
        results['sensitivity_scores_statistics'].to_csv(outfile, index=False)

    # Status
    print(f"Output written to: {args.output_dir}")


## script main
if __name__ == '__main__':
    main()
