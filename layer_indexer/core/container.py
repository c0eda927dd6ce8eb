# layer_indexer/core/container.py

from typing import Any, Callable, Dict, List, Optional, Tuple, Type, TypeVar
import inspect
import logging

from .logging import IndexerLogger, log_with_context

T = TypeVar('T')


class IndexerContainer:
    """
    Service registry with constructor injection.

    Constructor parameters annotated with a registered type are resolved from
    the container; a parameter named ``config`` receives the indexer config.
    """

    def __init__(self, config):
        self._config = config
        # service_type -> (implementation, factory, is_singleton)
        self._services: Dict[Type, Tuple[Optional[Type], Optional[Callable], bool]] = {}
        self._instances: Dict[Type, Any] = {}
        self._resolution_stack: List[Type] = []

        self._logger = IndexerLogger.get_logger('core.container')
        self._logger.debug("IndexerContainer initialized")

    @property
    def config(self):
        return self._config

    def register_singleton(self, interface: Type[T], implementation: Type[T]) -> 'IndexerContainer':
        """Register a service that gets created once and reused"""
        log_with_context(self._logger, logging.DEBUG, "Registering singleton service",
                        interface=interface.__name__,
                        implementation=implementation.__name__)
        self._services[interface] = (implementation, None, True)
        return self

    def register_transient(self, interface: Type[T], implementation: Type[T]) -> 'IndexerContainer':
        """Register a service that gets created fresh each time"""
        log_with_context(self._logger, logging.DEBUG, "Registering transient service",
                        interface=interface.__name__,
                        implementation=implementation.__name__)
        self._services[interface] = (implementation, None, False)
        return self

    def register_factory(self, interface: Type[T], factory_func: Callable[['IndexerContainer'], T]) -> 'IndexerContainer':
        """Register a factory function (treated as singleton)"""
        log_with_context(self._logger, logging.DEBUG, "Registering factory service",
                        interface=interface.__name__,
                        factory_func=factory_func.__name__)
        self._services[interface] = (None, factory_func, True)
        return self

    def register_instance(self, interface: Type[T], instance: T) -> 'IndexerContainer':
        """Register an already built object as a singleton"""
        self._services[interface] = (None, None, True)
        self._instances[interface] = instance
        return self

    def get(self, service_type: Type[T]) -> T:
        service_name = service_type.__name__

        if service_type in self._resolution_stack:
            circular_path = " -> ".join(t.__name__ for t in self._resolution_stack) + f" -> {service_name}"
            log_with_context(self._logger, logging.ERROR, "Circular dependency detected",
                            service_type=service_name,
                            circular_path=circular_path)
            raise ValueError(f"Circular dependency detected: {circular_path}")

        if service_type not in self._services:
            log_with_context(self._logger, logging.ERROR, "Service not registered",
                            service_type=service_name)
            raise ValueError(f"Service {service_name} not registered")

        implementation, factory, is_singleton = self._services[service_type]

        if is_singleton and service_type in self._instances:
            return self._instances[service_type]

        self._resolution_stack.append(service_type)
        try:
            if factory:
                instance = factory(self)
            else:
                instance = self._create_instance(implementation)

            if is_singleton:
                self._instances[service_type] = instance

            log_with_context(self._logger, logging.DEBUG, "Service instance created",
                            service_type=service_name,
                            instance_type=type(instance).__name__)
            return instance
        except Exception as e:
            log_with_context(self._logger, logging.ERROR, "Failed to create service instance",
                            service_type=service_name,
                            error=str(e),
                            exception_type=type(e).__name__)
            raise
        finally:
            self._resolution_stack.pop()

    def _create_instance(self, implementation_type: Type):
        sig = inspect.signature(implementation_type.__init__)
        kwargs = {}

        for param_name, param in sig.parameters.items():
            if param_name == 'self':
                continue

            param_type = param.annotation
            if param_type is not inspect.Parameter.empty and param_type in self._services:
                kwargs[param_name] = self.get(param_type)
            elif param_name == 'config':
                kwargs[param_name] = self._config
            elif param.default is inspect.Parameter.empty and param.kind not in (
                    inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD):
                log_with_context(self._logger, logging.DEBUG, "Skipping unresolvable parameter",
                                implementation=implementation_type.__name__,
                                parameter=param_name,
                                parameter_type=str(param_type))

        return implementation_type(**kwargs)

    def has_service(self, service_type: Type) -> bool:
        return service_type in self._services

    def has_instance(self, service_type: Type) -> bool:
        """True once a singleton has been built"""
        return service_type in self._instances

    def get_service_info(self) -> dict:
        """Get information about registered services"""
        services = {}
        for service_type, (implementation, factory, is_singleton) in self._services.items():
            if implementation:
                source = implementation.__name__
            elif factory:
                source = 'factory'
            else:
                source = 'instance'
            services[service_type.__name__] = {
                'implementation': source,
                'is_singleton': is_singleton,
                'is_cached': service_type in self._instances,
            }

        return {
            'registered_services': len(self._services),
            'cached_instances': len(self._instances),
            'services': services,
        }
