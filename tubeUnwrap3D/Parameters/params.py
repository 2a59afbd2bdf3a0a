"""
This module generates some general default parameter settings to help get started with certain functions with many parameters
"""

def cut_mesh_params():
    r""" parameters for cutting a topological cylinder mesh into a topological disk

    see :func:`tubeUnwrap3D.Unzipping.unzip.cylinder_cut_mesh`
    """
    params = {}
    params['method'] = 'fastest' # 'fastest' (Dijkstra) or 'nearest' (match a reference path)
    params['max_iter'] = 1000 # cap on the left/right face propagation

    return params

def nearest_path_params():
    r""" parameters for finding the cut path closest to a reference path e.g. the cut path of the previous timepoint

    see :func:`tubeUnwrap3D.Unzipping.cutpath.nearest_path`
    """
    params = {}
    params['penalties'] = [0., 1., 4., 16., 64., 256.] # attraction weights to the reference, 0 is the shortest path.
    params['metric'] = 'chamfer' # 'chamfer', 'hausdorff' or callable(path_pts, ref_pts) -> scalar
    params['n_ref_samples'] = 500

    return params

def phi0_registration_params():
    r""" parameters for the bounded 1D minimization of the azimuthal offset of each ring against the previous timepoint

    see :func:`tubeUnwrap3D.Registration.registration.phi_offsets_from_prev_mesh`
    """
    params = {}
    params['lowerbound'] = -0.5
    params['upperbound'] = 0.5
    params['xtol'] = 1e-5 # absolute tolerance of the bounded Brent search
    params['maxfun'] = 500
    params['n_jobs'] = 1
    params['show_progress'] = False

    return params

def iterative_phi0_params():
    r""" parameters for iteratively refining and smoothing the azimuthal offsets phi0(u)

    see :func:`tubeUnwrap3D.Registration.registration.iterative_phi_offsets`
    """
    params = phi0_registration_params()
    params['max_iter'] = 10
    params['tol'] = 1e-4 # stop when the largest update in phi0 is below this
    params['smooth_window'] = 5 # odd window (in rings) of the Savitzky-Golay smoothing of phi0(u). None to disable
    params['smooth_polyorder'] = 2

    return params

def pullback_params():
    r""" parameters for flattening a cut mesh to the unit square and resampling it on a regular (u,v) grid

    see :func:`tubeUnwrap3D.Unzipping.unzip.rectangular_pullback_cut_mesh` and :func:`tubeUnwrap3D.Unzipping.sequence.pullback_timepoint`
    """
    params = {}
    params['nU'] = 100
    params['nV'] = 100
    params['laplacian'] = 'uniform' # 'uniform' (Tutte) or 'cotangent'
    params['normal_shift'] = 0. # displace vertices along their normals before cutting

    return params

def polar_writhe_params():
    r""" parameters for computing the polar writhe of a curve

    see :func:`tubeUnwrap3D.Geometry.writhe.polar_writhe`
    """
    params = {}
    params['stationary_policy'] = 'clamp' # 'clamp': dz/ds<=0 are one class. 'strict': -1,0,+1 are distinct. 'fill': zeros take the previous sign
    params['n_samples'] = 100 # samples along z of the overlap of two segments
    params['stationary_tol'] = 1e-8 # |T_z| below which a sample is horizontal and dropped from the local writhe

    return params

def writhe_timeseries_params():
    r""" parameters for computing the writhe of a sequence of centerlines

    see :func:`tubeUnwrap3D.Analysis_Functions.timeseries.writhe_timeseries`
    """
    params = polar_writhe_params()
    params['framelen'] = 17 # odd Savitzky-Golay window applied to each centerline. None to disable
    params['polyorder'] = 2
    params['median_window'] = 5 # robust smoothing of Wr(t) before differentiation
    params['mean_window'] = 7

    return params
