"""
Registry for provisioning steps.

This module provides a registry for steps to register themselves and a
decorator for registering step classes.
"""

from typing import Any, Dict, List, Optional, Set, Type

from provisioner.base_step import BaseStep


class StepRegistry:
    """
    Registry for provisioning steps.

    This class provides a registry for step classes to register themselves
    and methods for accessing them and ordering them by dependency.
    """

    _registry: Dict[str, Type[BaseStep]] = {}

    @classmethod
    def register(cls, name: str, metadata: Optional[Dict[str, Any]] = None):
        """
        Decorator for registering step classes.

        Args:
            name: The name of the step.
            metadata: Optional metadata for the step, such as dependencies and
                      a description.

        Returns:
            A decorator function that registers the step class.
        """

        def decorator(step_class: Type[BaseStep]) -> Type[BaseStep]:
            if name in cls._registry:
                raise ValueError(f"Step with name '{name}' already registered")

            if metadata:
                step_class.metadata = metadata
            step_class.name = name

            cls._registry[name] = step_class
            return step_class

        return decorator

    @classmethod
    def get_step(cls, name: str) -> Type[BaseStep]:
        """
        Get a step class by name.

        Raises:
            KeyError: If no step with the given name is registered.
        """
        if name not in cls._registry:
            raise KeyError(f"No step registered with name '{name}'")

        return cls._registry[name]

    @classmethod
    def get_step_dependencies(cls, name: str) -> Set[str]:
        step_class = cls.get_step(name)
        metadata = getattr(step_class, "metadata", {})
        return set(metadata.get("dependencies", []))

    @classmethod
    def resolve_dependencies(cls, steps: List[str]) -> List[str]:
        """
        Resolve dependencies for a list of steps.

        Args:
            steps: A list of step names.

        Returns:
            A list of step names in the order they must run. Every step
            appears after all of its dependencies.

        Raises:
            KeyError: If any of the steps or their dependencies are not registered.
            ValueError: If there is a circular dependency.
        """
        result: List[str] = []
        visited: Set[str] = set()
        temp_visited: Set[str] = set()

        def visit(step: str):
            if step in temp_visited:
                raise ValueError(
                    f"Circular dependency detected involving '{step}'"
                )

            if step in visited:
                return

            temp_visited.add(step)

            for dependency in sorted(cls.get_step_dependencies(step)):
                visit(dependency)

            temp_visited.remove(step)
            visited.add(step)
            result.append(step)

        for step in steps:
            if step not in visited:
                visit(step)

        return result
