"""
Consistent pullbacks of a time sequence of tube surfaces. Each timepoint is cut, flattened and its azimuthal coordinate registered to the previous timepoint, which makes the timepoints strictly sequential.
"""
import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np

from ..Mesh import meshtools
from ..Registration import registration
from . import unzip


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TimepointSurface:
    r""" The segmented tube surface of one timepoint

    Attributes
    ----------
    faces : (n_faces,3) int array
        0-indexed consistently oriented triangles of a topological cylinder
    vertices : (n_vertices,3) array
        vertex positions
    vertex_normals : (n_vertices,3) array
        vertex normals, may be None
    cp1 : int
        boundary vertex on the u=0 end where the cut starts
    cp2 : int
        boundary vertex on the u=1 end where the cut terminates
    time : float
        timestamp of the surface
    """
    faces: np.ndarray
    vertices: np.ndarray
    vertex_normals: Optional[np.ndarray]
    cp1: int
    cp2: int
    time: float = 0.


@dataclass(frozen=True)
class TimepointPullback:
    r""" The registered pullback of one timepoint

    Attributes
    ----------
    time : float
        timestamp
    cut_mesh : :class:`tubeUnwrap3D.Unzipping.unzip.CutMesh`
        the cut surface
    uv : (n_vertices,2) array
        pullback coordinates of the cut mesh vertices
    uspace : (nU,) array
        u coordinates of the rings
    vspace : (nV,) array
        azimuthal sample coordinates, in [0,1)
    phi0s : (nU,) array
        azimuthal offset of each ring relative to the previous timepoint (zeros for the first)
    grid : (nU,nV,3) array
        embedding at (u_i, (v_j + phi0_i) mod 1), the registration reference of the next timepoint
    cp1 : int
        final start vertex of the cut path
    cp2 : int
        final end vertex of the cut path
    """
    time: float
    cut_mesh: unzip.CutMesh
    uv: np.ndarray
    uspace: np.ndarray
    vspace: np.ndarray
    phi0s: np.ndarray
    grid: np.ndarray
    cp1: int
    cp2: int

    @property
    def path(self):
        return self.cut_mesh.path

    @property
    def path_xyz(self):
        return self.cut_mesh.vertices[self.cut_mesh.path]


def pullback_timepoint(surface, prev=None,
                       method='fastest',
                       max_iter=1000,
                       nearest_params=None,
                       nU=100,
                       nV=100,
                       laplacian='uniform',
                       normal_shift=0.,
                       registration_params=None,
                       iterative_phi0=False):
    r""" Cut, flatten and register the surface of one timepoint.

    Parameters
    ----------
    surface : :class:`TimepointSurface`
        the surface to pull back
    prev : :class:`TimepointPullback`
        the finished pullback of the previous timepoint, None for the first timepoint
    method : str
        cut path method. 'nearest' takes the previous cut path as reference and falls back to 'fastest' for the first timepoint
    max_iter : int
        cap on the side propagation of the cut
    nearest_params : dict
        see :func:`tubeUnwrap3D.Parameters.params.nearest_path_params`
    nU : int
        number of rings
    nV : int
        number of samples per ring
    laplacian : str
        'uniform' or 'cotangent', see :func:`tubeUnwrap3D.Unzipping.unzip.rectangular_pullback_cut_mesh`
    normal_shift : scalar
        displacement of the vertices along their normals before cutting
    registration_params : dict
        see :func:`tubeUnwrap3D.Parameters.params.phi0_registration_params`, or :func:`tubeUnwrap3D.Parameters.params.iterative_phi0_params` when ``iterative_phi0=True``
    iterative_phi0 : bool
        if True, use :func:`tubeUnwrap3D.Registration.registration.iterative_phi_offsets`

    Returns
    -------
    pullback : :class:`TimepointPullback`
        the registered pullback

    """
    vertices = np.array(surface.vertices, dtype=np.float64)
    normals = surface.vertex_normals
    if normals is None:
        normals = np.array(meshtools.create_mesh(vertices, surface.faces).vertex_normals)
    if normal_shift != 0:
        vertices = meshtools.shift_vertices_along_normals(vertices, normals, normal_shift)

    ref_path = None
    if method == 'nearest':
        if prev is None:
            method = 'fastest'
        else:
            ref_path = prev.path_xyz

    cut_mesh, cp1, cp2, _ = unzip.cylinder_cut_mesh(surface.faces, vertices, normals,
                                                    surface.cp1, surface.cp2,
                                                    method=method,
                                                    ref_path=ref_path,
                                                    nearest_params=nearest_params,
                                                    max_iter=max_iter)
    uv = unzip.rectangular_pullback_cut_mesh(cut_mesh, laplacian=laplacian)

    uspace = np.linspace(0, 1, nU)
    vspace = np.linspace(0, 1, nV, endpoint=False)

    if registration_params is None:
        registration_params = {}

    if prev is None:
        phi0s = np.zeros(nU)
    else:
        if prev.grid.shape[:2] != (nU, nV):
            raise ValueError('previous pullback grid has shape %s, expected (%d, %d)' %(str(prev.grid.shape[:2]), nU, nV))
        if iterative_phi0:
            phi0s, n_iter = registration.iterative_phi_offsets(cut_mesh.faces, uv, cut_mesh.vertices,
                                                               uspace, vspace, prev.grid,
                                                               **registration_params)
            logger.info('t=%s: phi0 converged in %d iterations', str(surface.time), n_iter)
        else:
            phi0s = registration.phi_offsets_from_prev_mesh(cut_mesh.faces, uv, cut_mesh.vertices,
                                                            uspace, vspace, prev.grid,
                                                            **registration_params)
            phi0s = registration.fill_nan_phi0s(phi0s, uspace)

    grid = registration.sample_pullback_grid(cut_mesh.faces, uv, cut_mesh.vertices, uspace, vspace, phi0s)

    return TimepointPullback(time=surface.time,
                             cut_mesh=cut_mesh,
                             uv=uv,
                             uspace=uspace,
                             vspace=vspace,
                             phi0s=phi0s,
                             grid=grid,
                             cp1=cp1,
                             cp2=cp2)


def pullback_timeseries(surfaces, show_progress=True, **kwargs):
    r""" Pull back a time sequence of surfaces in order, registering each timepoint to the one before it.

    Parameters
    ----------
    surfaces : list of :class:`TimepointSurface`
        surfaces in temporal order
    show_progress : bool
        if True, show a progress bar over timepoints
    kwargs :
        keyword arguments of :func:`pullback_timepoint`

    Returns
    -------
    pullbacks : list of :class:`TimepointPullback`
        the pullback of every timepoint
    """
    from tqdm import tqdm

    pullbacks = []
    prev = None
    iterator = tqdm(surfaces, desc='pullbacks') if show_progress else surfaces
    for surface in iterator:
        prev = pullback_timepoint(surface, prev=prev, **kwargs)
        pullbacks.append(prev)
        logger.debug('t=%s: cut path %d -> %d', str(surface.time), prev.cp1, prev.cp2)

    return pullbacks
