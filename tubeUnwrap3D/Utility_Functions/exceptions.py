"""
Error types raised while cutting, flattening and registering tubular meshes.

Errors that abort processing of a timepoint are exceptions. Conditions that are recovered locally (a ring whose azimuthal offset cannot be found, NaN contributions to a writhe sum) are issued as warnings so that the rest of the computation proceeds.
"""


class MeshCutError(RuntimeError):
    r""" Base class of all errors raised while building a cut mesh from a tube mesh """
    pass


class TopologyError(MeshCutError):
    r""" The mesh does not have the Euler characteristic required by the operation

    Parameters
    ----------
    message : str
        description of the failure
    n_vertices : int
        number of vertices, V
    n_edges : int
        number of unique edges, E
    n_faces : int
        number of faces, F
    """
    def __init__(self, message, n_vertices=None, n_edges=None, n_faces=None):
        self.n_vertices = n_vertices
        self.n_edges = n_edges
        self.n_faces = n_faces
        if n_vertices is not None and n_edges is not None and n_faces is not None:
            self.euler_characteristic = int(n_vertices) - int(n_edges) + int(n_faces)
            message = message + ' (V=%d, E=%d, F=%d, V-E+F=%d)' %(n_vertices, n_edges, n_faces, self.euler_characteristic)
        else:
            self.euler_characteristic = None
        super(TopologyError, self).__init__(message)


class NotATopologicalCylinder(TopologyError):
    r""" input mesh has V-E+F != 0 """
    pass


class NotATopologicalDisk(TopologyError):
    r""" cut mesh has V-E+F != 1 """
    pass


class BoundaryConstraintError(MeshCutError):
    r""" The cut path endpoints violate the boundary constraints, e.g. trimming removed every point of the path

    Parameters
    ----------
    message : str
        description of the failure
    endpoints : list of int
        the offending vertex indices
    """
    def __init__(self, message, endpoints=None):
        self.endpoints = [] if endpoints is None else list(endpoints)
        super(BoundaryConstraintError, self).__init__(message)


class EndpointNotOnBoundary(BoundaryConstraintError):
    r""" one or both of the requested cut endpoints is not a boundary vertex """
    pass


class PathDegeneracyError(MeshCutError):
    r""" The cut path runs along existing boundary edges in more than one disjoint region and cannot be trimmed unambiguously

    Parameters
    ----------
    message : str
        description of the failure
    ranges : list of (int,int) tuples
        the inclusive (first, last) path-edge index of every region of the path lying on the mesh boundary
    """
    def __init__(self, message, ranges=None):
        self.ranges = [] if ranges is None else [tuple(int(r) for r in rr) for rr in ranges]
        super(PathDegeneracyError, self).__init__(message + ' regions=%s' %(str(self.ranges)))


class InvalidFaceOrientation(MeshCutError):
    r""" Neither face attached to a cut path edge traverses the edge in the positive sense

    Parameters
    ----------
    message : str
        description of the failure
    edge : (2,) tuple
        the directed path edge (v1, v2)
    faces : list of int
        the indices of the faces attached to the edge
    """
    def __init__(self, message, edge=None, faces=None):
        self.edge = None if edge is None else tuple(int(e) for e in edge)
        self.faces = [] if faces is None else [int(ff) for ff in faces]
        super(InvalidFaceOrientation, self).__init__(message)


class PropagationLimitExceeded(MeshCutError):
    r""" Assigning faces to the two sides of the cut did not finish within the iteration cap

    Parameters
    ----------
    message : str
        description of the failure
    max_iter : int
        the iteration cap
    n_unassigned : int
        number of faces touching the path still without a side
    """
    def __init__(self, message, max_iter=None, n_unassigned=None):
        self.max_iter = max_iter
        self.n_unassigned = n_unassigned
        super(PropagationLimitExceeded, self).__init__(message + ' (max_iter=%s, unassigned faces=%s)' %(str(max_iter), str(n_unassigned)))


class CutPropagationExceededMaxIterations(PropagationLimitExceeded):
    r""" the left/right flood fill of :func:`tubeUnwrap3D.Unzipping.unzip.cut_mesh_along_path` hit its iteration cap """
    pass


class InvalidReferencePath(ValueError):
    r""" reference path given for 'nearest' path matching is missing or has fewer than 3 points """
    pass


class OptimizationFailure(RuntimeWarning):
    r""" the bounded minimization for a ring did not reach a finite value. The ring's offset is reported as NaN """
    pass


class NumericDegeneracy(RuntimeWarning):
    r""" NaN or Inf contributions were excluded from a sum """
    pass
