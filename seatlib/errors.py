'''Errors raised by the apportionment engine.

Every failure that concerns the input data or the chosen calculation method is
signalled by a subclass of :class:`ApportionmentError`, so that an
orchestration layer can tell a labelled failure from a programming error.
A district where no entity is eligible is not an error; it produces an empty
allocation instead.
'''

from typing import Any, Optional


class ApportionmentError(Exception):
    '''Seats could not be apportioned for the given inputs.'''
    pass


class InconsistentTally(ApportionmentError):
    '''Vote counts violate a structural invariant.

    E.g. the votes of all entities in a district sum to more than the valid
    votes declared for it. Such tallies are never clamped.

    :param message: Description of the violated invariant.
    :param district_id: The district where the violation was found, if any.
    '''
    def __init__(self, message: str, district_id: Any = None):
        self.district_id = district_id
        if district_id is not None:
            message = f'district {district_id}: {message}'
        super().__init__(message)


class InvalidConfiguration(ApportionmentError, ValueError):
    '''Election setup, settings or method parameters are invalid.

    Covers non-positive seat counts, references to districts or entities that
    do not exist and unknown component names.
    '''
    pass


class MethodNotApplicable(ApportionmentError):
    '''The calculation method refuses to run for the given election.

    :param method_name: Name of the refusing method.
    :param reason: Why the method cannot be applied.
    '''
    def __init__(self, method_name: str, reason: Optional[str] = None):
        self.method_name = method_name
        self.reason = reason
        message = f'method {method_name} cannot be applied'
        if reason:
            message += f': {reason}'
        super().__init__(message)
