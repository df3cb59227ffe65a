"""
Main entry point for mdamath.

Calibrates a PCA or MLR model on a CSV file and prints the results as
plain-text tables.
"""

import argparse
import logging
import sys
from typing import Dict, List, Optional, Type

import pandas as pd
from numpy.linalg import LinAlgError

from mdamath.components.config import ConfigManager, read_config_file
from mdamath.exceptions import MDAError
from mdamath.math.dataset import Dataset
from mdamath.math.mlr import MLRModel
from mdamath.math.pca import PCAModel
from mdamath.math.results import Model

logger = logging.getLogger(__name__)


def setup_logging(level: str = 'INFO') -> None:
    """
    Set up logging.

    Args:
        level: Logging level name; unknown names fall back to WARNING
    """
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.WARNING),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler()
        ]
    )


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse command line arguments.

    Returns:
        Parsed arguments
    """
    parser = argparse.ArgumentParser(description='Multivariate data analysis')

    parser.add_argument(
        '--config',
        help='Path to configuration file'
    )

    parser.add_argument(
        '--save-config',
        help='Write the effective configuration to a YAML or JSON file'
    )

    parser.add_argument(
        '--log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
        help='Logging level'
    )

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument('data', help='CSV file with objects as rows and variables as columns')
    common.add_argument('--index-col', action='store_true',
                        help='Use the first column as object names')
    common.add_argument('--autoscale',
                        help="Preprocessing: none, center, scale or center+scale")
    common.add_argument('--cv', dest='cv_method',
                        help='Cross-validation method: none, full, random or venetian')
    common.add_argument('--nseg', type=int, help='Number of cross-validation segments')
    common.add_argument('--nrep', type=int, help='Number of cross-validation repetitions')
    common.add_argument('--seed', type=int, help='Seed for random cross-validation')

    subparsers = parser.add_subparsers(dest='command', required=True)

    pca_parser = subparsers.add_parser('pca', parents=[common], help='Principal Component Analysis')
    pca_parser.add_argument('--ncomp', type=int, help='Number of components')
    pca_parser.add_argument('--distances', action='store_true',
                            help='Print T2 and Q distances for the last component')

    mlr_parser = subparsers.add_parser('mlr', parents=[common], help='Multiple Linear Regression')
    mlr_parser.add_argument('--response', required=True, help='Name of the response column')

    return parser.parse_args(argv)


def build_overrides(args: argparse.Namespace) -> dict:
    """
    Collect configuration overrides from a config file and the command line.

    Args:
        args: Parsed arguments

    Returns:
        Overrides dictionary for Config
    """
    overrides = {}
    if args.config:
        overrides.update(read_config_file(args.config))

    if args.log_level is not None:
        overrides.setdefault('logging', {})['level'] = args.log_level.lower()

    model = overrides.setdefault('model', {})
    crossval = overrides.setdefault('crossval', {})

    if args.autoscale is not None:
        model['autoscale'] = args.autoscale
    if getattr(args, 'ncomp', None) is not None:
        model['ncomp'] = args.ncomp
    if args.cv_method is not None:
        crossval['method'] = args.cv_method
    if args.nseg is not None:
        crossval['nseg'] = args.nseg
    if args.nrep is not None:
        crossval['nrep'] = args.nrep
    if args.seed is not None:
        crossval['seed'] = args.seed

    return overrides


def load_dataset(filepath: str, index_col: bool = False) -> Dataset:
    """
    Read a CSV file into a Dataset, keeping numeric columns only.

    Args:
        filepath: Path to the CSV file
        index_col: Use the first column as object names

    Returns:
        Dataset with one variable per numeric column
    """
    df = pd.read_csv(filepath, index_col=0 if index_col else None)
    numeric = df.select_dtypes(include='number')
    dropped = [c for c in df.columns if c not in numeric.columns]
    if dropped:
        logger.warning(f"Ignoring non-numeric columns: {', '.join(map(str, dropped))}")
    if index_col is False:
        numeric.index = [f'O{i + 1}' for i in range(len(numeric))]
    return Dataset.from_frame(numeric, name=filepath)


MODELS: Dict[str, Type[Model]] = {
    'pca': PCAModel,
    'mlr': MLRModel,
}


def run_pca(args: argparse.Namespace, model: Model) -> None:
    data = load_dataset(args.data, args.index_col)
    model.calibrate(data)

    print(f"PCA model with {model.ncomp} components ({model.autoscale.name.lower()})")
    print()
    print("Explained variance, calibration:")
    print(model.calres.variance.to_frame().to_string())

    if model.cvres is not None:
        print()
        print("Explained variance, cross-validation:")
        print(model.cvres.variance.to_frame().to_string())

    if args.distances:
        last = model.ncomp - 1
        distances = pd.DataFrame({
            'T2': model.calres.t2.values[last],
            'Q': model.calres.q.values[last],
        }, index=data.obj_names)
        print()
        print(f"Residual distances for {model.ncomp} components:")
        print(distances.to_string())


def run_mlr(args: argparse.Namespace, model: Model) -> None:
    data = load_dataset(args.data, args.index_col)
    x = data.subset([name for name in data.var_names if name != args.response])
    y = data.subset(args.response)

    model.calibrate(x, y)

    print(f"MLR model for {args.response} ({model.autoscale.name.lower()})")
    print()
    print("Regression coefficients:")
    print(model.coeffs.to_frame().to_string())
    print()
    print("Performance:")
    print(model.summary().to_frame().to_string())


RUNNERS = {
    'pca': run_pca,
    'mlr': run_mlr,
}


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point.

    Returns:
        Process exit code
    """
    args = parse_args(argv)

    try:
        config = ConfigManager.get_config(build_overrides(args))
        setup_logging(config.get('logging.level', 'warning'))
        logger.debug(f"Effective configuration: {config.to_dict()}")

        if args.save_config:
            config.save_to_file(args.save_config)

        model = MODELS[args.command].from_config(config)
        RUNNERS[args.command](args, model)
    except (MDAError, LinAlgError) as e:
        logger.error(str(e))
        return 1

    return 0


if __name__ == '__main__':
    sys.exit(main())
