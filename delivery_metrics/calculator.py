"""Calculator base class and pipeline runner for Delivery Metrics."""

import logging

logger = logging.getLogger(__name__)


class Calculator:
    """Base class for calculators.

    A calculator is constructed with the item store, the settings dictionary
    and the shared ``results`` dictionary, keyed by calculator class. ``run()``
    returns this calculator's result; ``write()`` is called once all
    calculators have run and writes any output files.
    """

    def __init__(self, store, settings, results):
        self.store = store
        self.settings = settings
        self._results = results

    def get_result(self, calculator=None, default=None):
        """Get the result of another calculator, or of this one."""
        return self._results.get(calculator or self.__class__, default)

    def run(self):
        """Run the calculation and return its result."""
        raise NotImplementedError()

    def write(self):
        """Write output files, if any are configured."""


def run_calculators(calculators, store, settings):
    """Run each calculator in turn, then write all outputs.

    Calculators run in the given order so later ones may use earlier results.
    Returns the results dictionary keyed by calculator class.
    """
    results = {}
    instances = []

    for c in calculators:
        instance = c(store, settings, results)
        instances.append(instance)
        logger.info("%s running", c.__name__)
        results[c] = instance.run()
        logger.info("%s completed\n", c.__name__)

    for instance in instances:
        logger.info("Writing file for %s...", instance.__class__.__name__)
        instance.write()

    return results
