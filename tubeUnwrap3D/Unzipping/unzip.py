"""
Cutting a tube mesh open into a topological disk and flattening the disk onto the unit square.
"""
import logging
from dataclasses import dataclass, field
from typing import List

import numpy as np

from ..Mesh import meshtools
from ..Utility_Functions import exceptions
from . import cutpath


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CutMesh:
    r""" A topological disk made by cutting a topological cylinder along a seam path. The seam vertices appear twice: once with their original index, used by the faces on the left of the path, and once appended at the end of the vertex list, used by the faces on the right.

    Attributes
    ----------
    faces : (n_faces,3) int array
        0-indexed triangles of the cut mesh
    vertices : (n_vertices+n_path,3) array
        vertex coordinates, the duplicated seam vertices appended at the end
    vertex_normals : (n_vertices+n_path,3) array
        vertex normals, duplicated alongside the vertices
    path_pairs : (n_path,2) int array
        (original, duplicate) vertex index of every seam vertex in path order
    cut_inds_to_uncut_inds : (n_vertices+n_path,) int array
        index in the uncut mesh of every cut mesh vertex
    uncut_inds_to_cut_inds : list of int arrays
        for every uncut vertex, its one or two indices in the cut mesh
    """
    faces: np.ndarray
    vertices: np.ndarray
    vertex_normals: np.ndarray
    path_pairs: np.ndarray
    cut_inds_to_uncut_inds: np.ndarray
    uncut_inds_to_cut_inds: List[np.ndarray] = field(repr=False)

    @property
    def path(self):
        return self.path_pairs[:,0]

    @property
    def n_uncut_vertices(self):
        return len(self.uncut_inds_to_cut_inds)

    def euler_characteristic(self):
        chi, _ = meshtools.euler_characteristic(len(self.vertices), self.faces)
        return chi

    def to_trimesh(self):
        return meshtools.create_mesh(self.vertices, self.faces, vertex_normals=self.vertex_normals)


def face_traverses_edge(face, v1, v2):
    r""" Whether a triangle visits ``v1`` then ``v2`` going round its vertex cycle, i.e. whether the directed edge (v1,v2) is positively oriented in the face.

    Parameters
    ----------
    face : (3,) array
        the vertex indices of a triangle
    v1 : int
        first vertex of the directed edge
    v2 : int
        second vertex of the directed edge

    Returns
    -------
    positive : bool
        True if the position of v2 follows that of v1 modulo 3
    """
    face = [int(ff) for ff in np.ravel(face)]
    if len(face) != 3:
        raise ValueError('faces must be triangles, got a face with %d vertices' %(len(face)))
    if int(v1) not in face or int(v2) not in face:
        raise ValueError('edge (%d,%d) is not an edge of face %s' %(v1, v2, str(face)))

    return (face.index(int(v2)) - face.index(int(v1))) % 3 == 1


def _contiguous_ranges(inds):
    inds = np.sort(np.array(inds, dtype=np.int64))
    breaks = np.flatnonzero(np.diff(inds) > 1)
    starts = np.hstack([inds[0], inds[breaks+1]])
    stops = np.hstack([inds[breaks], inds[-1]])
    return list(zip(starts, stops))


def trim_boundary_edge_region(path, bdy_edge_ids):
    r""" Cut away the part of a path that runs along edges of the mesh boundary.

    A single contiguous region of boundary edges is removed together with the rest of the path on the shorter side: from the head if the region lies in the first half of the path, from the tail otherwise.

    Parameters
    ----------
    path : (n_path,) int array
        vertex indices of the path
    bdy_edge_ids : (n,) int array
        indices of the path edges (path[i], path[i+1]) with only one attached face

    Returns
    -------
    path_trim : (n_trim,) int array
        the trimmed path

    """
    path = np.array(path, dtype=np.int64)
    bdy_edge_ids = np.sort(np.array(bdy_edge_ids, dtype=np.int64))
    if len(bdy_edge_ids) == 0:
        return path

    ranges = _contiguous_ranges(bdy_edge_ids)
    if len(ranges) > 1:
        raise exceptions.PathDegeneracyError('cut path runs along the mesh boundary in %d disjoint regions' %(len(ranges)), ranges=ranges)

    n_edges = len(path) - 1
    if np.mean(bdy_edge_ids) < 0.5*n_edges:
        logger.info('cut path has one region living on the boundary (edges %d-%d), trimming from the beginning', bdy_edge_ids[0], bdy_edge_ids[-1])
        path_trim = path[bdy_edge_ids[-1]+1:]
    else:
        logger.info('cut path has one region living on the boundary (edges %d-%d), trimming from the end', bdy_edge_ids[0], bdy_edge_ids[-1])
        path_trim = path[:bdy_edge_ids[0]+1]

    if len(path_trim) < 2:
        raise exceptions.BoundaryConstraintError('trimming the boundary region removed the whole cut path', endpoints=path[[0,-1]])

    return path_trim


def _faces_adjacent_to(adjacency, mask, n_faces):
    out = np.zeros(n_faces, dtype=bool)
    out[adjacency[:,0][mask[adjacency[:,1]]]] = True
    out[adjacency[:,1][mask[adjacency[:,0]]]] = True
    return out


def cut_mesh_along_path(faces, vertices, vertex_normals, path, max_iter=1000):
    r""" Cut a topological cylinder along a boundary-to-boundary edge path into a topological disk.

    The path vertices are duplicated. Faces on the right of the path are rewired to the duplicates while faces on the left keep the originals. Which side a face attached to a path edge lies on is read from the cyclic order of the edge's vertices in the face, other faces touching the path are assigned by propagating sides through face adjacency. The input arrays are not modified.

    Parameters
    ----------
    faces : (n_faces,3) array
        0-indexed consistently oriented triangles of a topological cylinder
    vertices : (n_vertices,3) array
        vertex coordinates
    vertex_normals : (n_vertices,3) array
        vertex normals. If None, they are computed from the faces
    path : (n_path,) int array
        simple edge path joining the two boundaries, e.g. from :func:`tubeUnwrap3D.Unzipping.cutpath.find_cut_path`
    max_iter : int
        cap on the number of side propagation sweeps

    Returns
    -------
    cut_mesh : :class:`CutMesh`
        the cut mesh
    cp1_out : int
        first vertex of the final path (it may have been trimmed)
    cp2_out : int
        last vertex of the final path

    """
    faces = meshtools.check_faces(faces)
    vertices = np.array(vertices, dtype=np.float64)
    if vertex_normals is None:
        vertex_normals = np.array(meshtools.create_mesh(vertices, faces).vertex_normals)
    vertex_normals = np.array(vertex_normals, dtype=np.float64)
    n_vertices = len(vertices)
    n_faces = len(faces)

    cutpath.check_cylinder(faces, n_vertices)

    path = np.array(path, dtype=np.int64).ravel()
    if len(path) < 2:
        raise exceptions.BoundaryConstraintError('cut path needs at least 2 vertices', endpoints=path)
    if len(np.unique(path)) != len(path):
        raise ValueError('cut path must be a simple path, it visits a vertex more than once')

    # faces attached to each path edge.
    path_edges = np.vstack([path[:-1], path[1:]]).T
    attachments, counts = meshtools.edge_face_attachments(faces, path_edges)
    if np.any(counts == 0):
        raise ValueError('consecutive cut path vertices %s are not joined by a mesh edge' %(str(path_edges[counts==0].tolist())))
    if np.any(counts > 2):
        raise exceptions.TopologyError('cut path crosses non-manifold edges %s' %(str(path_edges[counts>2].tolist())))

    bdy_edge_ids = np.flatnonzero(counts < 2)
    if len(bdy_edge_ids) > 0:
        path = trim_boundary_edge_region(path, bdy_edge_ids)
        path_edges = np.vstack([path[:-1], path[1:]]).T
        attachments, counts = meshtools.edge_face_attachments(faces, path_edges)
        if np.any(counts != 2):
            raise exceptions.PathDegeneracyError('cut path still runs along the mesh boundary after trimming',
                                                 ranges=_contiguous_ranges(np.flatnonzero(counts != 2)))

    # orientation of the faces sharing an edge with the path.
    left = np.zeros(n_faces, dtype=bool)
    right = np.zeros(n_faces, dtype=bool)
    for (v1, v2), (fa, fb) in zip(path_edges, attachments):
        if face_traverses_edge(faces[fa], v1, v2):
            left[fa] = True
            right[fb] = True
        elif face_traverses_edge(faces[fb], v1, v2):
            left[fb] = True
            right[fa] = True
        else:
            raise exceptions.InvalidFaceOrientation('invalid face ordering, neither face attached to cut path edge (%d,%d) traverses it positively' %(v1, v2),
                                                    edge=(v1, v2), faces=(fa, fb))

    # remaining faces touching the path.
    path_face = np.any(np.isin(faces, path), axis=1)
    path_face[left] = False
    path_face[right] = False

    adjacency = meshtools.face_adjacency(faces)
    for ii in range(max_iter):
        if not np.any(path_face):
            break
        n_before = np.sum(path_face)

        right = right | (path_face & _faces_adjacent_to(adjacency, right, n_faces))
        left = left | (path_face & _faces_adjacent_to(adjacency, left, n_faces))
        right[left] = False

        path_face[left] = False
        path_face[right] = False

        if np.any(path_face) and np.sum(path_face) == n_before:
            raise exceptions.CutPropagationExceededMaxIterations('side propagation around the cut path stalled',
                                                                 max_iter=max_iter, n_unassigned=int(np.sum(path_face)))
    if np.any(path_face):
        raise exceptions.CutPropagationExceededMaxIterations('cutting process exceeds maximum iteration count',
                                                             max_iter=max_iter, n_unassigned=int(np.sum(path_face)))

    # rewire the right hand side to the duplicates.
    n_path = len(path)
    dup_inds = n_vertices + np.arange(n_path)
    lookup = np.arange(n_vertices)
    lookup[path] = dup_inds

    faces_cut = faces.copy()
    faces_cut[right] = lookup[faces[right]]

    vertices_cut = np.vstack([vertices, vertices[path]])
    normals_cut = np.vstack([vertex_normals, vertex_normals[path]])

    chi, n_edges = meshtools.euler_characteristic(len(vertices_cut), faces_cut)
    if chi != 1:
        raise exceptions.NotATopologicalDisk('output mesh is not a topological disk',
                                             n_vertices=len(vertices_cut), n_edges=n_edges, n_faces=len(faces_cut))

    cut_inds_to_uncut_inds = np.hstack([np.arange(n_vertices), path])
    uncut_inds_to_cut_inds = [np.array([vv]) for vv in range(n_vertices)]
    for pp, dd in zip(path, dup_inds):
        uncut_inds_to_cut_inds[pp] = np.array([pp, dd])

    cut_mesh = CutMesh(faces=faces_cut,
                       vertices=vertices_cut,
                       vertex_normals=normals_cut,
                       path_pairs=np.vstack([path, dup_inds]).T,
                       cut_inds_to_uncut_inds=cut_inds_to_uncut_inds,
                       uncut_inds_to_cut_inds=uncut_inds_to_cut_inds)

    logger.debug('cut mesh: %d seam vertices, %d left and %d right faces', n_path, np.sum(left), np.sum(right))

    return cut_mesh, int(path[0]), int(path[-1])


def cylinder_cut_mesh(faces, vertices, vertex_normals, cp1, cp2,
                      method='fastest',
                      ref_path=None,
                      nearest_params=None,
                      max_iter=1000):
    r""" Create a cut mesh from a topological cylinder by finding a cut path between two boundary vertices and cutting along it.

    Parameters
    ----------
    faces : (n_faces,3) array
        0-indexed consistently oriented triangles of a topological cylinder
    vertices : (n_vertices,3) array
        vertex coordinates
    vertex_normals : (n_vertices,3) array
        vertex normals
    cp1 : int
        boundary vertex where the cut path starts
    cp2 : int
        boundary vertex (on the other boundary) where the cut path terminates
    method : str
        'fastest' or 'nearest', see :func:`tubeUnwrap3D.Unzipping.cutpath.find_cut_path`
    ref_path : (n_points,3) array
        reference path coordinates for method='nearest'
    nearest_params : dict
        see :func:`tubeUnwrap3D.Parameters.params.nearest_path_params`
    max_iter : int
        cap on the number of side propagation sweeps

    Returns
    -------
    cut_mesh : :class:`CutMesh`
        the cut mesh
    cp1_out : int
        vertex ID of the final cut path origin
    cp2_out : int
        vertex ID of the final cut path termination
    path : (n_path,) int array
        the final cut path as indices of original vertices

    """
    path, _, _ = cutpath.find_cut_path(faces, vertices, cp1, cp2,
                                       method=method,
                                       ref_path=ref_path,
                                       nearest_params=nearest_params)
    cut_mesh, cp1_out, cp2_out = cut_mesh_along_path(faces, vertices, vertex_normals, path, max_iter=max_iter)

    return cut_mesh, cp1_out, cp2_out, cut_mesh.path.copy()


def _arclength_fraction(pts):
    seg = np.linalg.norm(np.diff(pts, axis=0), axis=-1)
    ss = np.hstack([0, np.cumsum(seg)])
    if ss[-1] > 0:
        return ss / ss[-1]
    return np.linspace(0, 1, len(pts))


def rectangular_pullback_cut_mesh(cut_mesh, laplacian='uniform'):
    r""" Flatten a cut mesh onto the unit square [0,1]x[0,1].

    The boundary loop of the disk is split at the four seam corners. The original side of the seam maps to v=0 and its duplicate to v=1, the tube end holding the start of the path to u=0 and the other end to u=1, each side parametrized by normalized arclength. Interior vertices solve the Laplace equation with the chosen Laplacian and the boundary values as Dirichlet constraints (a Tutte embedding for 'uniform').

    Parameters
    ----------
    cut_mesh : :class:`CutMesh`
        the cut mesh
    laplacian : str
        'uniform' for the graph Laplacian of :func:`tubeUnwrap3D.Mesh.meshtools.uniform_laplacian` (solved with ``igl.min_quad_with_fixed``) or 'cotangent' for the harmonic map of ``igl.harmonic``

    Returns
    -------
    uv : (n_vertices,2) array
        pullback coordinates of every cut mesh vertex, NaN for vertices referenced by no face

    """
    import igl

    if laplacian not in ('uniform', 'cotangent'):
        raise ValueError("laplacian must be one of 'uniform' or 'cotangent', got " + str(laplacian))

    faces = cut_mesh.faces
    vertices = cut_mesh.vertices
    n_vertices = len(vertices)

    loops = meshtools.boundary_loops(faces)
    if len(loops) != 1:
        raise exceptions.TopologyError('cut mesh boundary must be a single loop, found %d' %(len(loops)))
    loop = loops[0]

    a0, a1 = cut_mesh.path_pairs[0,0], cut_mesh.path_pairs[-1,0]
    b0, b1 = cut_mesh.path_pairs[0,1], cut_mesh.path_pairs[-1,1]
    if not np.all(np.isin([a0, a1, b0, b1], loop)):
        raise exceptions.TopologyError('seam corners of the cut mesh are not on its boundary')

    loop = np.roll(loop, -int(np.flatnonzero(loop == a0)[0]))
    pos = lambda x: int(np.flatnonzero(loop == x)[0])
    if not (pos(a1) < pos(b1) < pos(b0)):
        loop = np.hstack([loop[:1], loop[1:][::-1]])
    if not (pos(a1) < pos(b1) < pos(b0)):
        raise exceptions.TopologyError('boundary of the cut mesh does not visit the seam corners in order')

    ia1, ib1, ib0 = pos(a1), pos(b1), pos(b0)
    uv = np.full((n_vertices, 2), np.nan)

    side = loop[:ia1+1] # original seam, v=0
    uv[side,0] = _arclength_fraction(vertices[side]); uv[side,1] = 0.
    side = loop[ia1:ib1+1] # far tube end, u=1
    uv[side,0] = 1.; uv[side,1] = _arclength_fraction(vertices[side])
    side = loop[ib1:ib0+1] # duplicated seam, v=1
    uv[side,0] = 1. - _arclength_fraction(vertices[side]); uv[side,1] = 1.
    side = np.hstack([loop[ib0:], loop[:1]]) # near tube end, u=0
    uv[side,0] = 0.; uv[side,1] = 1. - _arclength_fraction(vertices[side])

    referenced = np.unique(faces)
    is_bdy = np.zeros(n_vertices, dtype=bool)
    is_bdy[loop] = True
    if np.any(~is_bdy[referenced]):
        # harmonic extension of the boundary values on the referenced vertices only
        remap = -np.ones(n_vertices, dtype=np.int64)
        remap[referenced] = np.arange(len(referenced))
        v_ref = np.ascontiguousarray(vertices[referenced], dtype=np.float64)
        f_ref = np.ascontiguousarray(remap[faces], dtype=np.int64)
        b = np.ascontiguousarray(remap[loop], dtype=np.int64)
        bc = np.ascontiguousarray(uv[loop], dtype=np.float64)

        if laplacian == 'cotangent':
            uv_ref = igl.harmonic(v_ref, f_ref, b, bc, 1)
        else:
            L = meshtools.uniform_laplacian(f_ref, n_vertices=len(v_ref)).tocsc()
            uv_ref = igl.min_quad_with_fixed(A=L,
                                             B=np.zeros((len(v_ref), 2)),
                                             known=b,
                                             Y=bc,
                                             pd=True)
        uv[referenced] = uv_ref

    return uv
