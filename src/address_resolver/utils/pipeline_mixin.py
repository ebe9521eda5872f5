"""Step-by-step execution for multi-stage batch runs.

Each step's result is passed to the next, and every step is reported on the
console as it completes or fails.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import Any, Callable, Iterable

from colorama import Fore, Style


class PipelineMixin:
    """Mixin for classes that run a fixed sequence of named steps.

    Usage:
        class MyRunner(PipelineMixin):
            STAGE = 'resolve'

            def _load_pipeline(self, path):
                return [
                    ('Read', read_records, {'path': path}),
                    ('Process', self.process, {}),
                ]
    """

    # Label printed in front of each step, set by the class using this mixin
    STAGE: str

    @abstractmethod
    def _load_pipeline(self, **kwargs: Any) -> Iterable[tuple[str, Callable, dict[str, Any]]]:
        """Define the pipeline steps.

        Returns:
            List of tuples: (step_name, function, kwargs)
        """
        ...

    def _execute_pipeline(self, progress: bool = True, **pipeline_kwargs: Any) -> Any:
        """Run every step in order and return the final step's result.

        The first step is called with its kwargs only; later steps also
        receive the previous result as their first argument.
        """
        result = None
        first = True

        for name, func, kwargs in self._load_pipeline(**pipeline_kwargs):
            try:
                result = func(**kwargs) if first else func(result, **kwargs)
                first = False
                if progress:
                    self._log_step_success(name)
            except Exception as e:
                self._log_step_failure(name, e)
                raise

        return result

    def _step_prefix(self, step_name: str) -> str:
        padding = len('Resolve Addresses') - len(step_name) + 4
        stage = getattr(self, 'STAGE', 'Pipeline').title()
        return f'{stage} -- {step_name} {"-" * max(padding, 1)}>'

    def _log_step_success(self, step_name: str) -> None:
        print(f'{self._step_prefix(step_name)} {Fore.GREEN}Complete{Style.RESET_ALL}')

    def _log_step_failure(self, step_name: str, error: Exception) -> None:
        print(f'{self._step_prefix(step_name)} {Fore.RED}Failed{Style.RESET_ALL}: {error}')
