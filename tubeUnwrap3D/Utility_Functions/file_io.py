def read_pickle(filename):
    r""" read python3 pickled .pkl files e.g. a saved :class:`tubeUnwrap3D.Unzipping.sequence.TimepointPullback`

    Parameters
    ----------
    filename : filepath
        absolute path of the file to read

    """
    import pickle

    with open(filename, 'rb') as output:
        return pickle.load(output)


def write_pickle(savepicklefile, savedict):
    r""" write python3 pickled .pkl files - use this for objects > 4GB

    Parameters
    ----------
    savepicklefile : filepath
        absolute path of the file to write to
    savedict : dictionary
        dictionary of variables (or any picklable object) to write

    """
    import pickle

    with open(savepicklefile, 'wb') as handle:
        pickle.dump(savedict,
                    handle,
                    protocol=pickle.HIGHEST_PROTOCOL)

    return []


def save_cut_mesh_mat(savematfile, cut_mesh, uv=None):
    r""" Save a cut mesh to a MATLAB .mat file. Indices are stored 0-based as in Python.

    Parameters
    ----------
    savematfile : filepath
        path of the .mat file to write
    cut_mesh : :class:`tubeUnwrap3D.Unzipping.unzip.CutMesh`
        the cut mesh
    uv : (n_vertices,2) array
        optional pullback coordinates saved alongside

    """
    import numpy as np
    import scipy.io as spio

    savedict = {'f': np.asarray(cut_mesh.faces, dtype=np.int64),
                'v': np.asarray(cut_mesh.vertices),
                'vn': np.asarray(cut_mesh.vertex_normals),
                'pathPairs': np.asarray(cut_mesh.path_pairs, dtype=np.int64),
                'cutIndsToUncutInds': np.asarray(cut_mesh.cut_inds_to_uncut_inds, dtype=np.int64)}
    if uv is not None:
        savedict['u'] = np.asarray(uv)

    spio.savemat(savematfile, savedict)

    return []


def load_cut_mesh_mat(matfile):
    r""" Load a cut mesh saved by :func:`save_cut_mesh_mat`

    Parameters
    ----------
    matfile : filepath
        path of the .mat file

    Returns
    -------
    cut_mesh : :class:`tubeUnwrap3D.Unzipping.unzip.CutMesh`
        the cut mesh
    uv : (n_vertices,2) array
        the pullback coordinates if saved, else None

    """
    import numpy as np
    import scipy.io as spio
    from ..Unzipping.unzip import CutMesh

    data = spio.loadmat(matfile)

    path_pairs = np.asarray(data['pathPairs'], dtype=np.int64).reshape(-1,2)
    cut_inds_to_uncut_inds = np.asarray(data['cutIndsToUncutInds'], dtype=np.int64).ravel()
    n_uncut = len(cut_inds_to_uncut_inds) - len(path_pairs)

    uncut_inds_to_cut_inds = [np.array([vv]) for vv in range(n_uncut)]
    for pp, dd in path_pairs:
        uncut_inds_to_cut_inds[pp] = np.array([pp, dd])

    cut_mesh = CutMesh(faces=np.asarray(data['f'], dtype=np.int64),
                       vertices=np.asarray(data['v'], dtype=np.float64),
                       vertex_normals=np.asarray(data['vn'], dtype=np.float64),
                       path_pairs=path_pairs,
                       cut_inds_to_uncut_inds=cut_inds_to_uncut_inds,
                       uncut_inds_to_cut_inds=uncut_inds_to_cut_inds)
    uv = np.asarray(data['u'], dtype=np.float64) if 'u' in data else None

    return cut_mesh, uv


def save_phi0s(savefile, uspace, phi0s):
    r""" Save the ring offsets as a two column text file (u, phi0)

    Parameters
    ----------
    savefile : filepath
        path of the text file to write
    uspace : (nU,) array
        u coordinate of each ring
    phi0s : (nU,) array
        offset of each ring

    """
    import numpy as np

    np.savetxt(savefile, np.vstack([np.ravel(uspace), np.ravel(phi0s)]).T, delimiter=',', header='u,phi0')

    return []


def load_phi0s(phi0file):
    r""" Load ring offsets saved by :func:`save_phi0s`

    Returns
    -------
    uspace : (nU,) array
        u coordinate of each ring
    phi0s : (nU,) array
        offset of each ring
    """
    import numpy as np

    data = np.loadtxt(phi0file, delimiter=',', ndmin=2)

    return data[:,0], data[:,1]
